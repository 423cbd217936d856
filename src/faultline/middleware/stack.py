from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterator

from .types import NextStep

if TYPE_CHECKING:
    from ..notification import Notification

LOGGER = logging.getLogger(__name__)

MiddlewareFactory = Callable[[NextStep], NextStep]


class MiddlewareStack:
    """Ordered middleware around the delivery of a notification.

    Entries are middleware factories, usually ``Middleware`` subclasses. The
    stack is meant to be arranged during setup and then only run; it does not
    lock against mutation while running.
    """

    def __init__(self) -> None:
        self._middlewares: list[MiddlewareFactory] = []
        self._disabled: list[MiddlewareFactory] = []

    def use(self, middleware: MiddlewareFactory) -> None:
        if middleware in self._disabled:
            return
        self._middlewares.append(middleware)

    def insert_after(self, after: MiddlewareFactory, middleware: MiddlewareFactory) -> None:
        if middleware in self._disabled:
            return
        positions = [index for index, entry in enumerate(self._middlewares) if entry == after]
        if not positions:
            self._middlewares.append(middleware)
            return
        self._middlewares.insert(positions[-1] + 1, middleware)

    def insert_before(self, before: MiddlewareFactory, middleware: MiddlewareFactory) -> None:
        if middleware in self._disabled:
            return
        try:
            index = self._middlewares.index(before)
        except ValueError:
            index = len(self._middlewares)
        self._middlewares.insert(index, middleware)

    def disable(self, *middlewares: MiddlewareFactory) -> None:
        self._disabled.extend(middlewares)
        self._middlewares = [entry for entry in self._middlewares if entry not in self._disabled]

    def is_disabled(self, middleware: MiddlewareFactory) -> bool:
        return middleware in self._disabled

    def to_list(self) -> list[MiddlewareFactory]:
        return list(self._middlewares)

    def __iter__(self) -> Iterator[MiddlewareFactory]:
        return iter(list(self._middlewares))

    def __len__(self) -> int:
        return len(self._middlewares)

    def __contains__(self, middleware: Any) -> bool:
        return middleware in self._middlewares

    def run(self, notification: "Notification", deliver: Callable[[], None]) -> None:
        """Run ``notification`` through every middleware, ending in ``deliver``.

        The first registered middleware runs first. Errors raised by middleware
        or by ``deliver`` are logged and never reach the caller. If the chain
        finishes without reaching ``deliver`` it is called directly, once.
        """
        delivered = False

        def deliver_step(_notification: "Notification") -> None:
            nonlocal delivered
            delivered = True
            deliver()

        try:
            chain: NextStep = deliver_step
            for middleware in reversed(self._middlewares):
                chain = middleware(chain)
            chain(notification)
        except Exception as exc:  # noqa: BLE001 - middleware must never break the host
            # Not reported through the notifier itself so broken middleware cannot loop.
            LOGGER.warning("Middleware error: %s", exc, exc_info=True)

        if delivered:
            return

        LOGGER.debug("Middleware chain did not reach delivery; delivering directly")
        try:
            deliver_step(notification)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Notification delivery error: %s", exc, exc_info=True)
