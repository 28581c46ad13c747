"""Notification service: route airdrop events to subscribers and sinks.

Publishers hand events to ``notify`` and return immediately. A background
task copies each event to every subscriber queue whose type filter accepts
it and to every attached sink (e.g. the webhook manager).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ergo_airdrop.notifications.events import RawEvent

logger = logging.getLogger(__name__)

_INPUT_BUFFER = 100


class EventSink(Protocol):
    """Anything that accepts events without awaiting delivery."""

    def dispatch(self, event: RawEvent) -> None: ...


@dataclass(frozen=True)
class _Subscription:
    queue: asyncio.Queue[RawEvent]
    types: frozenset[str] | None

    def wants(self, event: RawEvent) -> bool:
        return self.types is None or event.type in self.types


class NotificationService:
    """Asyncio event router.

    Usage::

        svc = NotificationService()
        failures = svc.add_subscriber("alerts", types=[AIRDROP_FAILED])
        await svc.start()
        await svc.notify(AirdropEvent(type=AIRDROP_FAILED, error="..."))
        event = await failures.get()
        await svc.stop()
    """

    def __init__(self) -> None:
        self._input: asyncio.Queue[RawEvent] = asyncio.Queue(maxsize=_INPUT_BUFFER)
        self._subscriptions: dict[str, _Subscription] = {}
        self._sinks: list[EventSink] = []
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def add_subscriber(
        self,
        key: str,
        *,
        types: Iterable[str] | None = None,
        buffer: int = _INPUT_BUFFER,
    ) -> asyncio.Queue[RawEvent]:
        """Register *key* and return its queue; *types* limits the event types."""
        queue: asyncio.Queue[RawEvent] = asyncio.Queue(maxsize=buffer)
        self._subscriptions[key] = _Subscription(
            queue=queue,
            types=frozenset(types) if types is not None else None,
        )
        return queue

    def remove_subscriber(self, key: str) -> None:
        self._subscriptions.pop(key, None)

    def attach(self, sink: EventSink) -> None:
        """Forward every event to *sink* as well."""
        self._sinks.append(sink)

    async def notify(self, event: RawEvent) -> None:
        """Hand *event* to the router; it is dropped when the router is backed up."""
        try:
            self._input.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Notification input queue full, dropping %s event", event.type)

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._route_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _route_forever(self) -> None:
        while True:
            event = await self._input.get()
            self._route(event)

    def _route(self, event: RawEvent) -> None:
        for key, subscription in list(self._subscriptions.items()):
            if not subscription.wants(event):
                continue
            try:
                subscription.queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Subscriber %s queue full, dropping %s event", key, event.type)
        for sink in list(self._sinks):
            try:
                sink.dispatch(event)
            except Exception:
                logger.exception("Event sink %r failed for %s event", sink, event.type)
