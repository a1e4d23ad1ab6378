# msgboard/core/constants.py
"""Application-wide constants."""

BRAND_NAME = "MessageBoard"
API_VERSION = "1.0.0"
API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Real-time message board with long-polling and push delivery."

DEFAULT_LONG_POLL_TIMEOUT_SECONDS = 30.0

# Error texts are part of the wire contract of existing frontends.
MESSAGE_REQUIRED_ERROR = "Message is required"
MESSAGE_NOT_FOUND_ERROR = "Message not found"
MESSAGE_TOO_LONG_ERROR = "Message is too long"

SSE_PATH = "/messages/stream"
WEBSOCKET_PATH = "/ws"
