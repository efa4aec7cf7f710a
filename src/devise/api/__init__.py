"""HTTP and WebSocket surface for display clients."""

from devise.api.app import create_app

__all__ = ["create_app"]
