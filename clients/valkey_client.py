"""
Valkey (Redis-compatible) client for cross-process coordination.

Holds the reminder scanner's single-flight lock so that only one worker
scans per interval. Simple wrapper around redis-py. Connection URL from Vault.
Fail-fast: raises on connection failure, never returns fallback values.
"""

import logging
from uuid import uuid4

import redis

logger = logging.getLogger(__name__)

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class ValkeyClient:
    """
    Redis-compatible client for Valkey.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        token = client.acquire_lock("crm:scanner", ttl_seconds=300)
        if token:
            try:
                ...
            finally:
                client.release_lock("crm:scanner", token)
    """

    def __init__(self, url: str):
        """
        Initialize Valkey connection.

        Args:
            url: Redis-compatible connection URL (e.g., redis://localhost:6379/0)

        Raises:
            redis.ConnectionError: If connection fails
        """
        self._client = redis.from_url(url, decode_responses=True)
        # Verify connectivity immediately (fail-fast)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def acquire_lock(self, key: str, ttl_seconds: int) -> str | None:
        """
        Take a lock that expires on its own.

        Args:
            key: Lock key
            ttl_seconds: Expiry, so a crashed holder cannot block forever

        Returns:
            Owner token if acquired, None if someone else holds it
        """
        token = str(uuid4())
        acquired = self._client.set(key, token, nx=True, ex=ttl_seconds)
        return token if acquired else None

    def release_lock(self, key: str, token: str) -> bool:
        """
        Release a lock we hold.

        Returns False if the lock expired or is held by someone else.
        """
        return bool(self._client.eval(_RELEASE_SCRIPT, 1, key, token))

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
        logger.info("ValkeyClient closed")
