"""Real-time message board with long-polling and push delivery."""

from .core.constants import API_VERSION as __version__

__all__ = ["__version__"]
