"""VIN API package."""

from vingen.api.v1.vins.routes import router

__all__ = ["router"]
