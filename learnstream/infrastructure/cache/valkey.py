# ==============================================================================
# Valkey Cache Implementation
# ==============================================================================
"""
Valkey/Redis implementation of the Cache interface.

Uses JSON serialization for storing dict values.
"""

import json
import logging

import redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

from learnstream.base import Cache
from learnstream.utils.config import get_settings
from learnstream.utils.retry import RETRY_ATTEMPTS_LIGHT

logger = logging.getLogger(__name__)


class ValkeyCache(Cache):
    """
    Valkey/Redis implementation of the Cache interface.

    Configured with short socket timeouts and a few client-side retries:
    the cache is an optimization, so a slow cache must not stall an
    aggregation pass.
    """

    def __init__(
        self,
        url: str | None = None,
        socket_timeout: int = 5,
        retries: int = RETRY_ATTEMPTS_LIGHT,
    ):
        """
        Initialize Valkey cache.

        Args:
            url: Valkey/Redis connection URL. If None, uses settings.
            socket_timeout: Socket timeout in seconds (default: 5)
            retries: Number of retries for transient failures
        """
        if url is None:
            url = get_settings().valkey.url

        retry_strategy = Retry(ExponentialBackoff(cap=4, base=1), retries=retries)

        self._client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry=retry_strategy,
            retry_on_error=[RedisTimeoutError, RedisConnectionError],
        )
        self._url = url

    @property
    def client(self) -> redis.Redis:
        """Get the underlying Redis client for advanced operations."""
        return self._client

    def get(self, key: str) -> dict | None:
        value = self._client.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Failed to decode JSON for key %s", key)
            return None

    def set(self, key: str, value: dict, ttl_seconds: int | None = None) -> None:
        json_value = json.dumps(value)
        if ttl_seconds is not None:
            self._client.setex(key, ttl_seconds, json_value)
        else:
            self._client.set(key, json_value)

    def delete(self, key: str) -> bool:
        return self._client.delete(key) > 0

    def delete_pattern(self, pattern: str) -> int:
        keys = list(self._client.scan_iter(pattern))
        if keys:
            return self._client.delete(*keys)
        return 0

    def ping(self) -> bool:
        """
        Check if the cache is reachable.

        Returns:
            True if ping succeeds, False otherwise
        """
        try:
            return bool(self._client.ping())
        except (RedisConnectionError, RedisTimeoutError):
            return False

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
