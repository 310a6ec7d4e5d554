import pytest
from fastapi.testclient import TestClient

from sewa_gateway.config import Settings
from sewa_gateway.main import create_app


class RecordingForwarder:
    """Stands in for QueueForwarder and keeps every submitted payload."""

    def __init__(self, url: str = "http://queue.test/submit"):
        self.url = url
        self.submitted = []
        self.started = False
        self.stopped = False

    @property
    def pending(self) -> int:
        return 0

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    def submit(self, payload) -> None:
        self.submitted.append(payload)


@pytest.fixture
def settings():
    return Settings(queue_url="http://queue.test/submit", log_requests=True)


@pytest.fixture
def forwarder():
    return RecordingForwarder()


@pytest.fixture
def client(settings, forwarder):
    app = create_app(settings, forwarder=forwarder)
    with TestClient(app) as test_client:
        yield test_client
