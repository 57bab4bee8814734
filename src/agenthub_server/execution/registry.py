"""Process-wide cancellation registry.

Each in-flight request owns exactly one entry in the registry, keyed by its
request id. The abort endpoint looks the entry up and triggers it; adapters
race every blocking read against the entry's handle so a cancellation is
observed promptly without polling.

Adapters never call register/release directly. They enter ``acquire()``,
which guarantees the entry is removed on every exit path.
"""

import asyncio
import logging
import threading
from contextlib import contextmanager
from typing import Any, AsyncIterable, AsyncIterator, Awaitable, Iterator, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestAborted(Exception):
    """Raised inside an adapter when its request was cancelled."""

    def __init__(self, request_id: str) -> None:
        super().__init__(f"Request {request_id} was aborted")
        self.request_id = request_id


class DuplicateRequestError(Exception):
    """Raised when a request id is registered while still live."""

    def __init__(self, request_id: str) -> None:
        super().__init__(f"Request id {request_id} is already in flight")
        self.request_id = request_id


class CancellationHandle:
    """Cancellation signal for one request.

    ``cancel()`` must be called from the event loop thread that runs the
    request; the abort endpoint and the adapters share that loop.
    """

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestAborted(self.request_id)

    async def guard(self, awaitable: Awaitable[T], timeout: float | None = None) -> T:
        """Await ``awaitable`` unless the request is cancelled first.

        Args:
            awaitable: The blocking operation (a read, a process wait, ...).
            timeout: Optional upper bound in seconds for this single operation.

        Returns:
            The awaitable's result.

        Raises:
            RequestAborted: If cancellation fires before the operation completes.
            asyncio.TimeoutError: If ``timeout`` elapses first.
        """
        operation = asyncio.ensure_future(awaitable)
        if self.cancelled:
            operation.cancel()
            raise RequestAborted(self.request_id)

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {operation, waiter},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
            if not operation.done():
                operation.cancel()

        if operation in done:
            return operation.result()
        if waiter in done:
            raise RequestAborted(self.request_id)
        raise asyncio.TimeoutError()

    async def iterate(
        self, source: AsyncIterable[T], timeout: float | None = None
    ) -> AsyncIterator[T]:
        """Yield from ``source``, guarding every read with cancellation and ``timeout``."""
        iterator = aiter(source)
        sentinel: Any = object()
        while True:
            item = await self.guard(anext(iterator, sentinel), timeout=timeout)
            if item is sentinel:
                return
            yield item


class CancellationRegistry:
    """Table of live requests and their cancellation handles."""

    def __init__(self) -> None:
        self._handles: dict[str, CancellationHandle] = {}
        self._lock = threading.Lock()

    def register(self, request_id: str) -> CancellationHandle:
        """Create and store a handle for ``request_id``.

        Raises:
            DuplicateRequestError: If the id already has a live entry.
        """
        with self._lock:
            if request_id in self._handles:
                raise DuplicateRequestError(request_id)
            handle = CancellationHandle(request_id)
            self._handles[request_id] = handle
        logger.debug(f"Registered cancellation handle for request {request_id}")
        return handle

    def cancel(self, request_id: str) -> bool:
        """Trigger the handle for ``request_id``.

        Returns:
            True if a live handle was found and triggered, False otherwise.
        """
        with self._lock:
            handle = self._handles.get(request_id)
        if handle is None:
            logger.debug(f"Cancel requested for unknown request {request_id}")
            return False
        handle.cancel()
        logger.info(f"Cancelled request {request_id}")
        return True

    def release(self, request_id: str) -> None:
        """Remove the entry for ``request_id``; a missing entry is ignored."""
        with self._lock:
            removed = self._handles.pop(request_id, None)
        if removed is not None:
            logger.debug(f"Released cancellation handle for request {request_id}")

    @contextmanager
    def acquire(self, request_id: str) -> Iterator[CancellationHandle]:
        """Hold a registry entry for the duration of the ``with`` block."""
        handle = self.register(request_id)
        try:
            yield handle
        finally:
            self.release(request_id)

    def active_ids(self) -> list[str]:
        with self._lock:
            return list(self._handles)

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._handles

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
