from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest

import faultline
from faultline.config import Configuration

API_KEY = "0123456789abcdef0123456789abcdef"


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


@pytest.fixture
def configuration() -> Configuration:
    return Configuration(api_key=API_KEY, release_stage="production", app_version="1.2.3")


@pytest.fixture
def posts(monkeypatch) -> List[Dict[str, Any]]:
    """Capture every HTTP POST made by delivery instead of hitting the network."""
    calls: List[Dict[str, Any]] = []

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append(
            {
                "url": url,
                "data": data,
                "payload": json.loads(data),
                "headers": headers,
                "timeout": timeout,
            }
        )
        return FakeResponse(200)

    monkeypatch.setattr("faultline.delivery.requests.post", fake_post)
    return calls


@pytest.fixture
def global_configuration(monkeypatch, configuration) -> Configuration:
    monkeypatch.setattr(faultline, "_configuration", configuration)
    return configuration
