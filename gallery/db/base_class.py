"""SQLAlchemy declarative base with table name conventions."""

import re

from sqlalchemy.orm import DeclarativeBase, declared_attr

_WORD_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class Base(DeclarativeBase):
    """Declarative base that maps ``MediaItem`` to a ``media_items`` table."""
    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[misc]
        return f"{_WORD_BOUNDARY.sub('_', cls.__name__).lower()}s"
