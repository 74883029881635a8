"""
Logging for the Flagpole API.

Every record carries the request id, and when known the acting user and the
project being worked on; deps.py and deps_permissions.py fill these in as
requests are authenticated and resolved.

Secrets never reach the output: SDK environment keys, bearer tokens and
password fields are redacted and email addresses are partially masked.
Staging and production emit one JSON object per line, development a
compact human-readable line.
"""

import json
import logging
import re
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict

from app.config import settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
user_id_ctx: ContextVar[str] = ContextVar("user_id", default="-")
project_id_ctx: ContextVar[str] = ContextVar("project_id", default="-")

_CONTEXT_FIELDS = (
    ("request_id", request_id_ctx),
    ("user_id", user_id_ctx),
    ("project_id", project_id_ctx),
)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


def current_context() -> Dict[str, str]:
    """Context values that are set for the running request."""
    return {name: var.get() for name, var in _CONTEXT_FIELDS if var.get() != "-"}


# ═══════════════════════════════════════════
#  Redaction
# ═══════════════════════════════════════════

# Keys minted by app.models.environment.generate_api_key
_SDK_KEY = re.compile(r"\benv-[A-Za-z0-9_\-]{8,}")
_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+", re.I)
_SECRET_FIELDS = re.compile(
    r'("?(?:password|access_token|secret_key|api_key|x-environment-key)"?\s*[:=]\s*)"[^"]*"', re.I
)
_EMAIL = re.compile(r"([A-Za-z0-9._%+-]+)@([A-Za-z0-9.-]+\.[A-Za-z]{2,})")


def _mask_email(match: re.Match) -> str:
    local, domain = match.group(1), match.group(2)
    tail = local[-1] if len(local) > 2 else ""
    return f"{local[0]}***{tail}@{domain}"


def mask_pii(text: str) -> str:
    text = _SECRET_FIELDS.sub(r'\1"***"', text)
    text = _BEARER.sub(r"\1***", text)
    text = _SDK_KEY.sub("env-***", text)
    return _EMAIL.sub(_mask_email, text)


# ═══════════════════════════════════════════
#  Formatters
# ═══════════════════════════════════════════

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": mask_pii(record.getMessage()),
            "service": settings.APP_NAME,
            "env": settings.APP_ENV,
            **current_context(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = mask_pii(self.formatException(record.exc_info))
        return json.dumps(entry, ensure_ascii=False, default=str)


class HumanFormatter(logging.Formatter):
    FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(request_id)s%(project)s] %(message)s"

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = request_id_ctx.get()
        project = project_id_ctx.get()
        record.project = "" if project == "-" else f" project={project[:8]}"
        record.msg = mask_pii(record.getMessage())
        record.args = None
        return super().format(record)


def setup_logging() -> None:
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if settings.is_production or settings.is_staging:
        handler.setFormatter(JSONFormatter())
        root.setLevel(logging.INFO)
    else:
        handler.setFormatter(HumanFormatter(HumanFormatter.FORMAT, datefmt="%H:%M:%S"))
        root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    for name in ("uvicorn.access", "httpcore", "httpx", "passlib", "multipart"):
        logging.getLogger(name).setLevel(logging.WARNING)
    # SQL is logged by the slow-query hook in app.db.session
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
