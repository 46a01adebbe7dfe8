"""Push notifications over Redis pub/sub for per-user delivery."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

import redis.asyncio as aioredis

from mindscape.notifications.channel import Notification, NotificationChannel, Permission

logger = logging.getLogger(__name__)


def user_channel(user_id: str) -> str:
    return f"ws:user:{user_id}"


class RedisPushChannel(NotificationChannel):
    """Publishes notifications to ``ws:user:{user_id}``.

    The client bridge pattern-subscribes to ``ws:user:*`` and shows the
    notification with the OS API. Permission is decided on the client, so
    the server side always reports it as granted.
    """

    def __init__(self, redis: aioredis.Redis | None, user_id: str) -> None:
        self.redis = redis
        self.user_id = user_id

    async def request_permission(self) -> Permission:
        return "granted"

    async def show(self, notification: Notification) -> None:
        if self.redis is None:
            return

        payload = {
            "event": "notification",
            "data": {
                "title": notification.title,
                "body": notification.body,
                "tag": notification.tag,
                "actions": [action.model_dump() for action in notification.actions],
                "data": notification.data,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }
        try:
            await self.redis.publish(user_channel(self.user_id), json.dumps(payload))
        except Exception:
            logger.warning("Failed to push notification via ws:user:%s", self.user_id, exc_info=True)
