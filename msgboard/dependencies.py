# msgboard/dependencies.py
"""
FastAPI dependencies resolving the per-application board components.

Components are created by ``create_app`` and stored on ``app.state``;
``HTTPConnection`` makes these usable from both HTTP and WebSocket routes.
"""

from starlette.requests import HTTPConnection

from .core.config import Settings
from .services.message_service import MessageService


def get_message_service(connection: HTTPConnection) -> MessageService:
    service: MessageService = connection.app.state.message_service
    return service


def get_app_settings(connection: HTTPConnection) -> Settings:
    settings: Settings = connection.app.state.settings
    return settings


def client_handle(connection: HTTPConnection) -> str:
    """Readable connection label for logs and subscriber handles."""
    if connection.client is None:
        return "unknown"
    return f"{connection.client.host}:{connection.client.port}"
