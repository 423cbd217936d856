from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .types import Middleware

if TYPE_CHECKING:
    from ..notification import Notification

LOGGER = logging.getLogger(__name__)


class Callbacks(Middleware):
    """Run the configured before-notify callbacks, then continue the chain."""

    def __call__(self, notification: "Notification") -> None:
        callbacks = list(notification.configuration.before_notify_callbacks)
        if callbacks:
            LOGGER.debug("Running %d before-notify callback(s)", len(callbacks))
        for callback in callbacks:
            callback(notification)
        self.next_step(notification)
