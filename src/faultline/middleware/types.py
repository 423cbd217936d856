from __future__ import annotations

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ..notification import Notification

NextStep = Callable[["Notification"], None]


class Middleware:
    """Base class for middleware run around notification delivery.

    A middleware is built with the next step of the chain and called with the
    notification. Subclasses inspect or modify the notification and must call
    ``self.next_step(notification)`` to continue; returning without doing so
    suppresses the remaining middleware.
    """

    def __init__(self, next_step: NextStep) -> None:
        self.next_step = next_step

    def __call__(self, notification: "Notification") -> None:
        self.next_step(notification)
