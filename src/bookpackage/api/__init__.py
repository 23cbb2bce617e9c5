"""HTTP API over the resource service."""

from bookpackage.api.main import create_app

__all__ = ["create_app"]
