"""Conversion of domain values to column values."""

from enum import Enum
from typing import Any, Dict, Mapping
from uuid import UUID


def to_column_values(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Unwrap enums and UUIDs so values can be written to the ORM columns."""
    converted: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, UUID):
            value = str(value)
        converted[key] = value
    return converted


def optional_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None
