"""Fan-out of progress lines to Server-Sent Events subscribers."""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 15.0


def sse_event(message: str) -> str:
    """Format a Server-Sent Event carrying ``message`` as its data."""
    lines = message.splitlines() or [""]
    return "".join(f"data: {line}\n" for line in lines) + "\n"


def report(
    broadcaster: LogBroadcaster | None,
    log: logging.Logger,
    level: int,
    msg: str,
    *args: object,
) -> None:
    """Log a status line and publish the rendered text to subscribers."""
    log.log(level, msg, *args)
    if broadcaster is not None:
        broadcaster.publish(msg % args if args else msg)


class LogBroadcaster:
    """Process-wide set of log subscribers.

    Each subscriber owns an unbounded queue. ``publish`` never waits, keeps no
    history, and a subscriber only sees lines published after it subscribed.
    """

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[str]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[str]:
        queue: asyncio.Queue[str] = asyncio.Queue()
        self._subscribers.append(queue)
        logger.debug("Log subscriber added (%d open)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[str]) -> None:
        try:
            self._subscribers.remove(queue)
        except ValueError:
            return
        logger.debug("Log subscriber removed (%d open)", len(self._subscribers))

    def publish(self, line: str) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(line)

    async def event_stream(
        self,
        queue: asyncio.Queue[str],
        is_disconnected: Callable[[], Awaitable[bool]],
        keepalive: float = KEEPALIVE_SECONDS,
    ) -> AsyncIterator[str]:
        """Yield SSE frames for ``queue`` until the client goes away."""
        try:
            while not await is_disconnected():
                try:
                    line = await asyncio.wait_for(queue.get(), timeout=keepalive)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield sse_event(line)
        finally:
            self.unsubscribe(queue)
