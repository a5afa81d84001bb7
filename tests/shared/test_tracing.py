"""Tests for span helpers"""

import pytest

from tenant_platform.shared.context import tenant_scope
from tenant_platform.shared.telemetry.tracing import add_span_attributes, get_trace_id, traced


@traced("test.double")
async def double(value: int) -> int:
    add_span_attributes(value=value)
    return value * 2


@traced("test.fail")
async def fail() -> None:
    raise LookupError("nothing here")


@pytest.mark.asyncio
async def test_traced_returns_result():
    with tenant_scope("tenant-a"):
        assert await double(21) == 42


@pytest.mark.asyncio
async def test_traced_propagates_errors():
    with pytest.raises(LookupError):
        await fail()


def test_traced_keeps_function_metadata():
    assert double.__name__ == "double"


def test_no_trace_id_outside_a_span():
    assert get_trace_id() is None
