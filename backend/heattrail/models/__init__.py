"""SQLAlchemy ORM models."""

from heattrail.models.kv_entry import KeyValueEntry

__all__ = [
    "KeyValueEntry",
]
