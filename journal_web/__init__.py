"""Flask JSON API for the journal publishing core."""
from .app import create_app

__all__ = ["create_app"]
