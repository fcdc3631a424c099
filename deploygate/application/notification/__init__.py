"""Outbound HTTP callbacks."""

from .connection_manager import ConnectionManager
from .notification_dispatcher import NotificationDispatcher

__all__ = ["ConnectionManager", "NotificationDispatcher"]
