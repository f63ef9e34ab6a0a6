"""REST API package."""

from tracker.api.app import create_app

__all__ = ["create_app"]
