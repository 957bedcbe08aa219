from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


class Cancelled(Exception):
    """Raised inside a run once its token has fired."""


class CancellationToken:
    """Cooperative cancellation shared by every suspension point of a run.

    ``run`` races an awaitable against the token: if the token fires first the
    awaiting task is cancelled (closing any in-flight HTTP request) and
    ``Cancelled`` is raised.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled(self.reason or "cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        if not work.done():
            work.cancel()
            try:
                await work
            except asyncio.CancelledError:
                pass
            raise Cancelled(self.reason or "cancelled")
        result = work.result()
        # la respuesta pudo llegar justo cuando se canceló: se descarta igual
        self.raise_if_cancelled()
        return result

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            self.raise_if_cancelled()
            return
        await self.run(asyncio.sleep(seconds))
