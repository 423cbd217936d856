from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from .types import Middleware

if TYPE_CHECKING:
    from ..notification import Notification


class RequestDataTabs(Middleware):
    """Copy the notification's request data into metadata.

    Mapping entries become tabs of the same name; scalar entries land in the
    ``custom`` tab.
    """

    def __call__(self, notification: "Notification") -> None:
        request_data = notification.request_data or {}
        for name, value in request_data.items():
            if isinstance(value, Mapping):
                notification.add_tab(name, dict(value))
            else:
                notification.add_custom_data(name, value)
        self.next_step(notification)
