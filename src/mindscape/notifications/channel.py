"""Notification channel and in-app toast collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger()

Permission = Literal["granted", "denied", "default"]

DEFAULT_TAG = "mindscape-break"


class NotificationAction(BaseModel):
    action: str
    title: str


class Notification(BaseModel):
    title: str
    body: str
    tag: str = DEFAULT_TAG
    actions: list[NotificationAction] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)


class Toast(BaseModel):
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class ToastSink(ABC):
    """In-app toast surface. Presentational only."""

    @abstractmethod
    def show(self, toast: Toast) -> None: ...


class ToastLog(ToastSink):
    """Keeps shown toasts in order and logs them."""

    def __init__(self) -> None:
        self.toasts: list[Toast] = []

    def show(self, toast: Toast) -> None:
        self.toasts.append(toast)
        logger.info("toast_shown", title=toast.title, variant=toast.variant)

    @property
    def titles(self) -> list[str]:
        return [toast.title for toast in self.toasts]


class NotificationChannel(ABC):
    """OS-level notification surface (browser, push bridge, ...)."""

    @abstractmethod
    async def request_permission(self) -> Permission:
        """Ask the user for permission to show notifications."""

    @abstractmethod
    async def show(self, notification: Notification) -> None:
        """Display ``notification``."""


class RecordingChannel(NotificationChannel):
    """In-memory channel that records every shown notification."""

    def __init__(self, permission: Permission = "granted") -> None:
        self.permission: Permission = permission
        self.permission_requests = 0
        self.shown: list[Notification] = []

    async def request_permission(self) -> Permission:
        self.permission_requests += 1
        return self.permission

    async def show(self, notification: Notification) -> None:
        self.shown.append(notification)
