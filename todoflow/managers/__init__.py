"""Stateful managers for ToDoFlow.

Engines are pure; managers own the little mutable state the library has.
- notification_manager: NotificationScout (reminder dedup per local day)
"""

from .notification_manager import NotificationScout, Reminder, default_message_builder

__all__ = ["NotificationScout", "Reminder", "default_message_builder"]
