"""Import all models here for Alembic autogenerate."""

from gallery.db.base_class import Base
from gallery.models import media  # noqa: F401

__all__ = ["Base"]
