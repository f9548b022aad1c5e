"""Redis client construction."""

import redis.asyncio as redis


def create_redis_client(url: str, *, socket_timeout: float | None = None) -> redis.Redis:
    """Create an asyncio Redis client for the given URL.

    One client is built per process by the backend selector and owned by the
    sequence store that receives it.
    """
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        decode_responses=True,
    )
