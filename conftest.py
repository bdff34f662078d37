import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import Config

PROXY_HOST = "myproxy.example"


class RecordingLogger:
    """RequestLogger that keeps every call for assertions."""

    def __init__(self):
        self.requests = []
        self.responses = []
        self.errors = []

    def log_request(self, method, target_url):
        self.requests.append((method, target_url))

    def log_response(self, method, target_url, status, *, reason="", rewritten=False):
        self.responses.append((method, target_url, status, reason, rewritten))

    def log_error(self, target_url, status, message):
        self.errors.append((target_url, status, message))


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def proxy_client(recording_logger):
    """Build a TestClient whose upstream is served by ``handler``."""
    clients = []

    def _create(handler, config: Config | None = None) -> TestClient:
        app = create_app(
            config or Config(),
            recording_logger,
            transport=httpx.MockTransport(handler),
        )
        client = TestClient(app, base_url=f"http://{PROXY_HOST}")
        client.__enter__()
        clients.append(client)
        return client

    yield _create

    for client in clients:
        client.__exit__(None, None, None)
