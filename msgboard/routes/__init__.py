from . import health, messages, push

__all__ = ["health", "messages", "push"]
