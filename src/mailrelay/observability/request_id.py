"""Request ID management for log correlation.

One id per HTTP request or SMTP DATA transaction, propagated across async
operations and worker threads through a context variable.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Get current request ID from context ("no-request-id" if unset)."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
