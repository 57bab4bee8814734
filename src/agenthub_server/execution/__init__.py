"""Request lifecycle primitives shared by every execution adapter."""

from agenthub_server.execution.registry import (
    CancellationHandle,
    CancellationRegistry,
    DuplicateRequestError,
    RequestAborted,
)

__all__ = [
    "CancellationHandle",
    "CancellationRegistry",
    "DuplicateRequestError",
    "RequestAborted",
]
