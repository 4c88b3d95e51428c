"""HTTP API for the app builder."""

from appbuilder.api.app import create_app

__all__ = ["create_app"]
