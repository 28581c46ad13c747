"""Notifications: airdrop event emission and webhook dispatch.

Provides:
- ``NotificationService``: fan-out event bus using asyncio queues
- ``WebhookNotifier``: delivers events to a single webhook URL with retries
- ``WebhookManager``: manages lifecycle of all webhook notifiers
"""

from __future__ import annotations

from ergo_airdrop.notifications.events import AirdropEvent, AirdropSummary, RawEvent
from ergo_airdrop.notifications.service import NotificationService
from ergo_airdrop.notifications.webhook import WebhookManager, WebhookNotifier

__all__ = [
    "AirdropEvent",
    "AirdropSummary",
    "NotificationService",
    "RawEvent",
    "WebhookManager",
    "WebhookNotifier",
]
