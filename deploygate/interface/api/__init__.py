"""REST surface for deploy gates."""

from .app import create_app

__all__ = ["create_app"]
