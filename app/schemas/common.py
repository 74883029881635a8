"""Validators shared by the partial-update schemas."""
from typing import Any


def reject_null(value: Any) -> Any:
    """Omitting a field leaves it unchanged; sending ``null`` for a required column is an error."""
    if value is None:
        raise ValueError("may be omitted but not null")
    return value
