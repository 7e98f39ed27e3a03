"""
Shared fixtures for Identity service tests.
"""

from typing import Dict, Optional

import pytest
from prometheus_client import CollectorRegistry
from starlette.requests import Request

from shared.metrics import MetricsCollector


def build_request(headers: Optional[Dict[str, str]] = None,
                  cookies: Optional[Dict[str, str]] = None,
                  path: str = "/") -> Request:
    """Build a real Starlette request carrying the given headers and cookies."""
    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    if cookies:
        cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
        raw_headers.append((b"cookie", cookie_header.encode("latin-1")))

    return Request({
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": b"",
        "headers": raw_headers,
    })


@pytest.fixture
def make_request():
    """Factory fixture for Starlette requests."""
    return build_request


@pytest.fixture
def metrics():
    """Metrics collector bound to an isolated registry."""
    return MetricsCollector("identity", registry=CollectorRegistry())
