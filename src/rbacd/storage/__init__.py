"""Document storage, record models and seed data."""

from .database import PERMISSION, ROLE, TEMPLATE, USER, Database
from .models import Record, RecordType, merge_update

__all__ = [
    "Database",
    "Record",
    "RecordType",
    "merge_update",
    "USER",
    "ROLE",
    "PERMISSION",
    "TEMPLATE",
]
