"""
Middleware run around notification delivery.

Public API:
    - Middleware: Base class for middleware (built with the next step, called with the notification)
    - MiddlewareStack: Ordered, fault-isolating chain ending in delivery
    - Callbacks: Runs the configured before-notify callbacks
    - RequestDataTabs: Copies request data into metadata tabs
"""

from __future__ import annotations

from .types import Middleware, NextStep

from .callbacks import Callbacks
from .request_data import RequestDataTabs
from .stack import MiddlewareStack

__all__ = [
    "Middleware",
    "NextStep",
    "MiddlewareStack",
    "Callbacks",
    "RequestDataTabs",
]
