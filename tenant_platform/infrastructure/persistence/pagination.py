"""Pagination parameters, result containers and the cursor token codec."""

from __future__ import annotations

import base64
import binascii
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from tenant_platform.domain.enums import SortDirection
from tenant_platform.domain.exceptions import InvalidCursorError

T = TypeVar("T")


class PaginationParams(BaseModel):
    """Offset pagination request; ``page`` is 1-based."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)
    order_by: str = "id"
    direction: SortDirection = SortDirection.ASC

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass
class CursorPage(Generic[T]):
    items: list[T]
    has_more: bool
    next_cursor: str | None = None
    prev_cursor: str | None = None


@dataclass
class BulkItemFailure:
    index: int
    error: str
    item: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "error": self.error}


@dataclass
class BulkOperationResult(Generic[T]):
    successful: list[T] = field(default_factory=list)
    failed: list[BulkItemFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def fail_count(self) -> int:
        return len(self.failed)


def _format_value(value: Any) -> str:
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_cursor(field_name: str, value: Any) -> str:
    """Base64 of ``"<field>:<value>"``."""
    raw = f"{field_name}:{_format_value(value)}"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[str, str]:
    """
    Split a cursor token back into ``(field, raw value)``.

    Accepts both the standard and the URL-safe base64 alphabet, with or
    without padding.

    Raises:
        InvalidCursorError: If the token is not base64 or has no ``field:`` prefix
    """
    token = cursor.strip().replace("-", "+").replace("_", "/")
    token += "=" * (-len(token) % 4)
    try:
        raw = base64.b64decode(token, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise InvalidCursorError(cursor) from e

    field_name, separator, value = raw.partition(":")
    if not separator or not field_name:
        raise InvalidCursorError(cursor, "missing field prefix")
    return field_name, value


def coerce_cursor_value(raw: str, python_type: type | None) -> Any:
    """Convert the textual cursor value back to the ordering column's type."""
    if python_type is None or python_type is str:
        return raw
    try:
        if python_type is bool:
            return raw == "true"
        if python_type is datetime:
            return datetime.fromisoformat(raw)
        if python_type is date:
            return date.fromisoformat(raw)
        return python_type(raw)
    except (TypeError, ValueError) as e:
        raise InvalidCursorError(raw, "value does not match the ordering column") from e
