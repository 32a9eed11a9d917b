"""Cancellation scopes for background provisioning work.

A CancellationScope is a one-shot signal shared between the code that owns an
operation and the background tasks observing it. Scopes form a tree: cancelling
a scope cancels every scope derived from it with child(), never the reverse.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from types import TracebackType
from typing import TypeVar

from envdeck.lib.errors import ScopeCancelledError

T = TypeVar("T")


class CancellationScope:
    """One-shot cancellation signal with parent/child propagation."""

    def __init__(self, parent: CancellationScope | None = None) -> None:
        """Create a scope, optionally derived from ``parent``.

        Args:
            parent: Scope whose cancellation also cancels this one
        """
        self._event = asyncio.Event()
        self._children: list[CancellationScope] = []
        self._parent = parent
        if parent is not None:
            parent._children.append(self)
            if parent.cancelled:
                self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether the scope has been cancelled."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Cancel this scope and every scope derived from it. Idempotent."""
        if self._event.is_set():
            return
        self._event.set()
        children, self._children = self._children, []
        for child in children:
            child.cancel()
        if self._parent is not None and self in self._parent._children:
            self._parent._children.remove(self)

    def child(self) -> CancellationScope:
        """Derive a scope that is cancelled when this one is."""
        return CancellationScope(parent=self)

    async def wait(self) -> None:
        """Block until the scope is cancelled."""
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """Wait ``delay`` seconds unless the scope is cancelled first.

        Returns:
            True if the scope was cancelled before or during the wait.
        """
        if self.cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` but abandon it as soon as the scope is cancelled.

        The in-flight call is cancelled rather than awaited to completion. A
        result that arrives after cancellation is discarded.

        Raises:
            ScopeCancelledError: If the scope was or became cancelled
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise ScopeCancelledError("scope cancelled before call started")

        call = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not call.done():
                call.cancel()

        if self.cancelled:
            if call.done() and not call.cancelled():
                # Retrieve so an exception is not reported as never retrieved
                call.exception()
            raise ScopeCancelledError("scope cancelled while call was in flight")
        return call.result()

    def __enter__(self) -> CancellationScope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cancel()
