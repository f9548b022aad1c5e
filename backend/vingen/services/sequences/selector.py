"""Sequence backend selection.

Decided once per process (application lifespan or CLI command) and then
injected. Never switch backends mid-session: two backends counting the same
prefix will issue duplicates.
"""

import structlog

from vingen.config import Settings
from vingen.config import settings as default_settings
from vingen.services.exceptions import ConfigurationError
from vingen.services.sequences.base import SequenceStore
from vingen.services.sequences.file_store import FileSequenceStore
from vingen.services.sequences.redis_store import RedisSequenceStore
from vingen.utils.redis import create_redis_client
from vingen.utils.request_retry import RequestRetryConfig

logger = structlog.get_logger(__name__)


def resolve_backend_name(settings: Settings) -> str:
    """Return "redis" or "file" for the given settings."""
    if settings.sequence_backend == "auto":
        return "redis" if settings.use_redis else "file"
    return settings.sequence_backend


def select_sequence_store(settings: Settings | None = None) -> SequenceStore:
    """Build the sequence store the current environment supports."""
    settings = settings or default_settings
    backend = resolve_backend_name(settings)

    if backend == "redis":
        if not settings.sequence_redis_url:
            raise ConfigurationError("Redis sequence backend requested but SEQUENCE_REDIS_URL is not set")
        client = create_redis_client(
            settings.sequence_redis_url,
            socket_timeout=settings.sequence_operation_timeout,
        )
        logger.info(
            "Using Redis sequence store",
            namespace=settings.sequence_key_namespace,
            multi_instance_safe=True,
        )
        return RedisSequenceStore(
            client,
            namespace=settings.sequence_key_namespace,
            retry_config=RequestRetryConfig(
                max_attempts=settings.sequence_retry_attempts,
                min_wait=settings.sequence_retry_min_wait,
                max_wait=settings.sequence_retry_max_wait,
            ),
            operation_timeout=settings.sequence_operation_timeout,
            warn_threshold=settings.sequence_warn_threshold,
        )

    logger.info("Using local file sequence store", path=settings.sequence_file_path)
    logger.warning(
        "Local file sequence store is only safe with a single running instance",
        multi_instance_safe=False,
    )
    return FileSequenceStore(
        settings.sequence_file_path,
        operation_timeout=settings.sequence_operation_timeout,
        warn_threshold=settings.sequence_warn_threshold,
    )
