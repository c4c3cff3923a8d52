"""JSON-ready conversion of report records."""

from dataclasses import fields, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


def to_dict(obj: Any) -> dict:
    """Convert a record (dataclass or mapping) to a JSON-ready dict."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return dataclass_to_dict(obj)
    if isinstance(obj, dict):
        return {key: serialize_value(value) for key, value in obj.items()}
    return {"value": str(obj)}


def dataclass_to_dict(obj: Any) -> dict:
    """Serialize each field of a dataclass.

    Walks ``fields()`` instead of ``asdict()`` so nested dataclasses (like
    dashboard alerts) and enums go through :func:`serialize_value`.
    """
    return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}


def serialize_value(value: Any) -> Any:
    """Money as exact strings, enums as their value, dates as ISO 8601."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):  # datetime included
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return dataclass_to_dict(value)
    if isinstance(value, dict):
        return {key: serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value
