"""
Stream liveness guard.

A provider can accept a connection and then hang without ever closing it.
``LivenessGuard.watch`` wraps any async iterator so that each item must
arrive within ``idle_timeout`` seconds; otherwise the pending read is
cancelled and ``StreamStalledError`` is raised.  The same wait watches an
optional cancellation event, raising ``StreamCancelled`` when it fires.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, TypeVar

from libre.llm.errors import StreamCancelled, StreamStalledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LivenessGuard:
    def __init__(self, idle_timeout: float = 60.0) -> None:
        if idle_timeout <= 0:
            raise ValueError("idle_timeout must be positive")
        self.idle_timeout = idle_timeout

    async def watch(
        self,
        source: AsyncIterator[T],
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[T]:
        iterator = source.__aiter__()
        try:
            while True:
                if cancel is not None and cancel.is_set():
                    raise StreamCancelled()

                read = asyncio.ensure_future(iterator.__anext__())
                waiters: set[asyncio.Future] = {read}
                cancel_wait = None
                if cancel is not None:
                    cancel_wait = asyncio.ensure_future(cancel.wait())
                    waiters.add(cancel_wait)

                try:
                    done, _ = await asyncio.wait(
                        waiters,
                        timeout=self.idle_timeout,
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                finally:
                    if cancel_wait is not None:
                        cancel_wait.cancel()
                    if not read.done():
                        read.cancel()
                        await asyncio.wait({read})

                if cancel_wait is not None and cancel_wait in done:
                    raise StreamCancelled()
                if read not in done:
                    logger.warning(
                        "Stream stalled: no data for %.1fs", self.idle_timeout
                    )
                    raise StreamStalledError(self.idle_timeout)

                try:
                    item = read.result()
                except StopAsyncIteration:
                    return
                yield item
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()
