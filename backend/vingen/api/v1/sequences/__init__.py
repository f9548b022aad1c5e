"""Sequence inspection API package."""

from vingen.api.v1.sequences.routes import router

__all__ = ["router"]
