"""Webhook delivery of airdrop events.

Each webhook URL gets a notifier that buffers events and POSTs them as
``{"events": [...]}`` batches. A batch that still fails after
``MAX_RETRIES`` retries bans the URL for ``BAN_TIME`` seconds; events
arriving while banned are dropped.
"""

from __future__ import annotations

import asyncio
import collections
import contextlib
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from ergo_airdrop.config.settings import NotificationConfig
    from ergo_airdrop.notifications.events import RawEvent

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100
MAX_PENDING = 100
MAX_RETRIES = 2
RETRY_DELAY = 1.0  # seconds, doubled after every failed attempt
BAN_TIME = 3600  # seconds


@dataclass
class WebhookConfig:
    """A single webhook subscription."""

    url: str
    token_header: str = "Authorization"  # noqa: S105
    token_value: str = ""
    banned_until: float = 0.0  # unix timestamp

    @property
    def headers(self) -> dict[str, str]:
        if self.token_header and self.token_value:
            return {self.token_header: self.token_value}
        return {}


class WebhookNotifier:
    """Buffer events for one webhook URL and deliver them in batches."""

    def __init__(self, config: WebhookConfig, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._pending: collections.deque[dict[str, Any]] = collections.deque()
        self._wakeup = asyncio.Event()
        self._client = client
        self._owns_client = client is None
        self._task: asyncio.Task[None] | None = None

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def is_banned(self) -> bool:
        return time.time() < self._config.banned_until

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def start(self) -> None:
        if self._task is not None:
            return
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=10.0)
        self._task = asyncio.create_task(self._deliver_forever())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def enqueue(self, event: RawEvent) -> None:
        """Buffer *event* for the next batch; dropped while banned or full."""
        if self.is_banned:
            return
        if len(self._pending) >= MAX_PENDING:
            logger.warning("Webhook %s has %d pending events, dropping", self.url, MAX_PENDING)
            return
        self._pending.append(event.to_dict())
        self._wakeup.set()

    def drain(self) -> list[dict[str, Any]]:
        """Take up to ``MAX_BATCH_SIZE`` buffered events."""
        count = min(len(self._pending), MAX_BATCH_SIZE)
        return [self._pending.popleft() for _ in range(count)]

    async def _deliver_forever(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            while self._pending:
                batch = self.drain()
                try:
                    await self.send(batch)
                except Exception:
                    logger.exception("Webhook delivery to %s failed", self.url)

    async def send(self, events: list[dict[str, Any]]) -> bool:
        """POST one batch; returns whether it was accepted.

        Failed attempts are retried with a doubling delay. When every attempt
        fails the URL is banned.
        """
        if self._client is None:
            return False

        delay = RETRY_DELAY
        attempts = MAX_RETRIES + 1
        for attempt in range(1, attempts + 1):
            try:
                resp = await self._client.post(
                    self.url,
                    json={"events": events},
                    headers=self._config.headers,
                )
            except httpx.HTTPError as exc:
                reason = str(exc) or type(exc).__name__
            else:
                if resp.is_success:
                    return True
                reason = f"HTTP {resp.status_code}"
            logger.warning("Webhook %s: %s (attempt %d/%d)", self.url, reason, attempt, attempts)
            if attempt < attempts:
                await asyncio.sleep(delay)
                delay *= 2

        self._config.banned_until = time.time() + BAN_TIME
        self._pending.clear()
        logger.warning("Webhook %s banned for %d seconds", self.url, BAN_TIME)
        return False


class WebhookManager:
    """Webhook subscriptions, usable as a ``NotificationService`` sink."""

    def __init__(self) -> None:
        self._notifiers: dict[str, WebhookNotifier] = {}

    @classmethod
    async def from_config(cls, config: NotificationConfig) -> WebhookManager:
        manager = cls()
        for url in config.webhook_urls:
            await manager.subscribe(url, token_value=config.webhook_token)
        return manager

    def urls(self) -> list[str]:
        return list(self._notifiers)

    async def subscribe(
        self,
        url: str,
        token_header: str = "Authorization",  # noqa: S107
        token_value: str = "",
    ) -> WebhookNotifier:
        """Subscribe *url*, replacing any existing subscription for it."""
        await self.unsubscribe(url)
        notifier = WebhookNotifier(
            WebhookConfig(url=url, token_header=token_header, token_value=token_value),
        )
        await notifier.start()
        self._notifiers[url] = notifier
        logger.info("Webhook subscribed: %s", url)
        return notifier

    async def unsubscribe(self, url: str) -> bool:
        notifier = self._notifiers.pop(url, None)
        if notifier is None:
            return False
        await notifier.stop()
        logger.info("Webhook unsubscribed: %s", url)
        return True

    async def stop(self) -> None:
        for url in self.urls():
            await self.unsubscribe(url)

    def dispatch(self, event: RawEvent) -> None:
        """Buffer *event* on every subscribed webhook."""
        for notifier in self._notifiers.values():
            notifier.enqueue(event)
