"""Utility functions and helpers."""

from vingen.utils.redis import create_redis_client
from vingen.utils.request_retry import RequestRetryConfig, get_request_retrying

__all__ = [
    "create_redis_client",
    "RequestRetryConfig",
    "get_request_retrying",
]
