"""Tests for cursor tokens and page containers"""

import base64
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from tenant_platform.domain.exceptions import InvalidCursorError
from tenant_platform.infrastructure.persistence.pagination import (
    Page,
    PaginationParams,
    coerce_cursor_value,
    decode_cursor,
    encode_cursor,
)


def test_cursor_is_base64_of_field_and_value():
    cursor = encode_cursor("name", "Acme")

    assert base64.b64decode(cursor).decode() == "name:Acme"
    assert decode_cursor(cursor) == ("name", "Acme")


def test_value_may_contain_colons():
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    field, raw = decode_cursor(encode_cursor("created_at", stamp))

    assert field == "created_at"
    assert coerce_cursor_value(raw, datetime) == stamp


def test_decode_accepts_url_safe_alphabet_without_padding():
    raw = "name:??>>"  # encodes to characters that differ between the alphabets
    url_safe = base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")

    assert decode_cursor(url_safe) == ("name", "??>>")


@pytest.mark.parametrize("cursor", ["***", "bm9wcmVmaXg=", base64.b64encode(b":value").decode()])
def test_invalid_cursors_are_rejected(cursor):
    with pytest.raises(InvalidCursorError) as exc_info:
        decode_cursor(cursor)

    assert exc_info.value.error_code == "VALIDATION_ERROR"
    assert exc_info.value.details["cursor"] == cursor


def test_coerce_cursor_value():
    assert coerce_cursor_value("42", int) == 42
    assert coerce_cursor_value("true", bool) is True
    assert coerce_cursor_value("text", str) == "text"
    assert coerce_cursor_value("text", None) == "text"


def test_coerce_rejects_mismatched_value():
    with pytest.raises(InvalidCursorError):
        coerce_cursor_value("abc", int)


def test_pagination_params_offset_and_bounds():
    assert PaginationParams(page=3, page_size=20).offset == 40

    with pytest.raises(PydanticValidationError):
        PaginationParams(page=0)
    with pytest.raises(PydanticValidationError):
        PaginationParams(page_size=101)


def test_page_properties():
    page = Page(items=[1, 2], total=12, page=2, page_size=5)

    assert page.pages == 3
    assert page.has_next is True
    assert page.has_previous is True
    assert Page(items=[], total=0, page=1, page_size=5).pages == 0
