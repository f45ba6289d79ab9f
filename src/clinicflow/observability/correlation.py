"""Correlation ID handling for request tracing across the dashboard API."""

import re
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Incoming IDs are echoed back in headers and logs, keep them short and plain
_VALID_INCOMING = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def resolve_correlation_id(incoming: str | None) -> str:
    """Reuse a well-formed incoming ID, otherwise mint a fresh one."""
    if incoming and _VALID_INCOMING.match(incoming):
        return incoming
    return generate_correlation_id()


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    correlation_id_var.reset(token)


@contextmanager
def correlation_scope(cid: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block (scripts, tests)."""
    cid = cid or generate_correlation_id()
    token = set_correlation_id(cid)
    try:
        yield cid
    finally:
        reset_correlation_id(token)
