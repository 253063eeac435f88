"""
Pytest configuration and shared fixtures.

Provides an in-process fake Log API, a recording delivery client and a
factory for ApiLogger instances that never touch the real endpoint.
"""

import asyncio
import gzip
import json
import os
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional, Union

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from nrlogs.config import Settings, ShipperSettings
from nrlogs.core.delivery import DeliveryResult
from nrlogs.core.logger import LICENSE_KEY_ENV, ApiLogger
from nrlogs.core.metrics import MetricsCollector
from nrlogs.main import create_app
from nrlogs.models.log_record import Batch

LOG_API_PATH = "/log/v1"


class FakeLogApi:
    """
    Stand-in for the Log API.

    Records every request and answers with a configurable status and body.
    """

    def __init__(self) -> None:
        self.requests: List[Dict[str, Any]] = []
        self.status = 202
        self.body: Union[str, bytes] = json.dumps({"requestId": "req-0001"})
        self.delay = 0.0

        self.app = web.Application()
        self.app.router.add_post(LOG_API_PATH, self.handle)
        self.server = TestServer(self.app)

    async def handle(self, request: web.Request) -> web.Response:
        raw = await request.read()
        # aiohttp may already have inflated the body
        data = gzip.decompress(raw) if raw[:2] == b"\x1f\x8b" else raw

        self.requests.append({
            "headers": request.headers.copy(),
            "payload": json.loads(data),
        })

        if self.delay:
            await asyncio.sleep(self.delay)

        body = self.body if isinstance(self.body, bytes) else self.body.encode("utf-8")
        return web.Response(status=self.status, body=body, content_type="application/json")

    @property
    def url(self) -> str:
        return str(self.server.make_url(LOG_API_PATH))

    def messages(self, index: int = 0) -> List[str]:
        """Messages of the n-th request, in payload order."""
        return [entry["message"] for entry in self.requests[index]["payload"][0]["logs"]]


class RecordingClient:
    """Delivery client double that remembers the batches it was given."""

    def __init__(self) -> None:
        self.batches: List[Batch] = []
        self.common_attributes: List[Dict[str, Any]] = []

    async def deliver(self, batch: Batch, common_attributes: Optional[Mapping[str, Any]] = None) -> DeliveryResult:
        self.batches.append(batch)
        self.common_attributes.append(dict(common_attributes or {}))
        return DeliveryResult(success=True, records_sent=len(batch), request_id="recorded")


@pytest_asyncio.fixture
async def fake_log_api() -> Any:
    """Running fake Log API server."""
    api = FakeLogApi()
    await api.server.start_server()
    try:
        yield api
    finally:
        await api.server.close()


@pytest.fixture
def recording_client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on its own registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def logger_factory() -> Callable[..., ApiLogger]:
    """
    Build ApiLoggers with test defaults.

    Harvest timer and exit hook are off unless a test asks for them.
    """
    def factory(**options: Any) -> ApiLogger:
        options.setdefault("license_key", "test-license-key")
        options.setdefault("harvest", False)
        options.setdefault("exit_hook", False)
        return ApiLogger(**options)

    return factory


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Remove nrlogs and license variables, including ones set during the test."""
    for key in list(os.environ):
        if key.startswith("NRLOGS_") or key == LICENSE_KEY_ENV:
            monkeypatch.delenv(key)

    yield

    for key in list(os.environ):
        if key.startswith("NRLOGS_"):
            del os.environ[key]


@pytest.fixture
def test_client(clean_env: None) -> Generator[TestClient, None, None]:
    """Demo app with harvesting off and no license key, so nothing leaves the process."""
    settings = Settings(shipper=ShipperSettings(license_key=None, harvest=False))
    with TestClient(create_app(settings, configure=False)) as client:
        yield client
