"""Shared fixtures for message board tests."""

from fastapi.testclient import TestClient
import pytest

from msgboard.core.config import Settings
from msgboard.main import create_app
from msgboard.repositories.message_store import MessageStore
from msgboard.services.message_service import MessageService
from msgboard.services.messaging.delivery import DeliveryCoordinator
from msgboard.services.messaging.registry import SubscriberRegistry

# Short enough to keep the suite fast, long enough to not race the test body.
TEST_LONG_POLL_TIMEOUT = 0.2


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        long_poll_timeout_seconds=TEST_LONG_POLL_TIMEOUT,
        sse_heartbeat_interval=0.05,
        push_queue_size=16,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # The context manager keeps one event loop for every request and websocket,
    # which the long-poll futures and push outboxes rely on.
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def store() -> MessageStore:
    return MessageStore()


@pytest.fixture
def registry() -> SubscriberRegistry:
    return SubscriberRegistry(long_poll_timeout=TEST_LONG_POLL_TIMEOUT, push_queue_size=16)


@pytest.fixture
def coordinator(registry) -> DeliveryCoordinator:
    return DeliveryCoordinator(registry)


@pytest.fixture
def service(store, registry, coordinator) -> MessageService:
    return MessageService(store, registry, coordinator, max_message_length=50)
