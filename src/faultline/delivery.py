from __future__ import annotations

import logging
from typing import Any

import requests

from .helpers import dump_json, reduce_hash_size
from .logging_utils import render_fields_block

LOGGER = logging.getLogger(__name__)

MAX_PAYLOAD_BYTES = 128000
REQUEST_TIMEOUT = 5
HEADERS = {"Content-Type": "application/json"}


def _payload_bytes(payload: dict[str, Any]) -> bytes:
    return dump_json(payload).encode("utf-8")


def deliver_exception_payload(endpoint: str, payload: dict[str, Any]) -> None:
    """POST ``payload`` to ``endpoint`` once, logging instead of raising on failure.

    Payloads above ``MAX_PAYLOAD_BYTES`` are resent with reduced metadata.
    """
    try:
        body = _payload_bytes(payload)
        if len(body) > MAX_PAYLOAD_BYTES:
            original_size = len(body)
            for event in payload.get("events", []):
                if "metaData" in event:
                    event["metaData"] = reduce_hash_size(event["metaData"])
            body = _payload_bytes(payload)
            LOGGER.debug(
                "Payload for %s reduced from %d to %d bytes",
                endpoint,
                original_size,
                len(body),
            )

        response = requests.post(endpoint, data=body, headers=HEADERS, timeout=REQUEST_TIMEOUT)
    except Exception as exc:  # noqa: BLE001 - reporting must never raise into the host
        LOGGER.warning("Notification to %s failed, %r", endpoint, exc, exc_info=True)
        return

    if not LOGGER.isEnabledFor(logging.DEBUG):
        return
    LOGGER.debug(
        render_fields_block(
            "Notification Delivered",
            {
                "Endpoint": endpoint,
                "Status": response.status_code,
                "Payload": body.decode("utf-8"),
            },
            pad_top=True,
        )
    )
