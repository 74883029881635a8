from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    # Table name defaults to the snake-cased plural of the class name
    @declared_attr.directive
    def __tablename__(cls) -> str:
        name = "".join(
            f"_{c.lower()}" if c.isupper() and i else c.lower()
            for i, c in enumerate(cls.__name__)
        )
        return f"{name}s"
