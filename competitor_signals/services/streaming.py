"""Progress streaming: per-request session channels and per-report live update subscribers."""
import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator
from typing import Any, Optional

from competitor_signals.config import settings

logger = logging.getLogger(__name__)

KEEPALIVE_EVENT = {"type": "keepalive"}
_CLOSED = object()


class StreamChannel:
    """One open push connection. Events queue until the transport reads them."""

    def __init__(self, key: str):
        self.key = key
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def send(self, event: dict[str, Any]) -> None:
        if not self.closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_CLOSED)

    async def events(self, keepalive: Optional[float] = None) -> AsyncIterator[dict[str, Any]]:
        """Yield queued events until closed, with a keepalive after each idle interval."""
        interval = keepalive if keepalive is not None else settings.STREAM_KEEPALIVE_SECONDS
        while True:
            try:
                event = await asyncio.wait_for(self._queue.get(), interval)
            except asyncio.TimeoutError:
                yield KEEPALIVE_EVENT
                continue
            if event is _CLOSED:
                return
            yield event


def sse_frame(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event, default=str)}\n\n"


async def sse_stream(
    channel: StreamChannel,
    on_close,
    keepalive: Optional[float] = None,
) -> AsyncIterator[str]:
    """Encode channel events as text/event-stream frames. ``on_close`` runs when the client goes away."""
    try:
        async for event in channel.events(keepalive):
            yield sse_frame(event)
    finally:
        on_close()


class StreamSessionRegistry:
    """Maps ephemeral stream session ids to open channels."""

    def __init__(self):
        self._channels: dict[str, StreamChannel] = {}

    @staticmethod
    def new_session_id(parent_session_id: str) -> str:
        return f"{parent_session_id}_{int(time.time() * 1000)}"

    def open(self, session_id: str) -> StreamChannel:
        existing = self._channels.get(session_id)
        if existing is not None and not existing.closed:
            return existing
        channel = StreamChannel(session_id)
        self._channels[session_id] = channel
        logger.debug("Stream session opened: %s", session_id)
        return channel

    def send(self, session_id: Optional[str], event: dict[str, Any]) -> bool:
        """Deliver to an open session. Unknown or closed sessions are ignored."""
        channel = self._channels.get(session_id) if session_id else None
        if channel is None or channel.closed:
            return False
        channel.send(event)
        return True

    def close(self, session_id: Optional[str]) -> None:
        channel = self._channels.pop(session_id, None) if session_id else None
        if channel is not None:
            channel.close()
            logger.debug("Stream session closed: %s", session_id)

    def is_open(self, session_id: Optional[str]) -> bool:
        return bool(session_id) and session_id in self._channels

    def __len__(self) -> int:
        return len(self._channels)


class LiveUpdateHub:
    """Per-report subscriber sets. Publishing is best-effort to whoever is subscribed now."""

    def __init__(self):
        self._subscribers: dict[str, set[StreamChannel]] = {}

    def subscribe(self, report_id: str) -> StreamChannel:
        channel = StreamChannel(report_id)
        self._subscribers.setdefault(report_id, set()).add(channel)
        return channel

    def unsubscribe(self, report_id: str, channel: StreamChannel) -> None:
        channel.close()
        subs = self._subscribers.get(report_id)
        if subs is None:
            return
        subs.discard(channel)
        if not subs:
            del self._subscribers[report_id]

    def publish(self, report_id: str, event: dict[str, Any]) -> int:
        subs = self._subscribers.get(report_id, set())
        for channel in list(subs):
            channel.send(event)
        return len(subs)

    def subscriber_count(self, report_id: str) -> int:
        return len(self._subscribers.get(report_id, ()))
