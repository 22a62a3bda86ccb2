import json
from typing import Any, Optional

import redis

from logger import get_logger

logger = get_logger(__name__)


class RedisDB:
    def __init__(
        self,
        host,
        port,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client: Optional[redis.Redis] = None,
    ):
        """Initializes the Redis client.

        Args:
            host: Redis server host
            port: Redis server port
            username: Redis username
            password: Redis password
            client: Pre-built client, skips connecting (used by tests)
        """
        if client is not None:
            self.client = client
            return

        try:
            self.client = redis.Redis(
                host=host,
                port=port,
                decode_responses=True,
                username=username,
                password=password,
            )
            self.client.ping()
            logger.info(f"Connected to Redis at {host}:{port}")
        except redis.ConnectionError as e:
            logger.exception(f"Failed to connect to Redis: {e}")
            raise

    def set(self, key: str, value: Any, expiry: Optional[int] = None):
        """Sets a key-value pair in Redis.

        Args:
            key: Key name
            value: Value to store (will be JSON serialized if dict/list)
            expiry: Optional expiry time in seconds
        """
        if isinstance(value, (dict, list)):
            value = json.dumps(value)

        try:
            if expiry:
                self.client.setex(key, expiry, value)
            else:
                self.client.set(key, value)
            logger.debug(f"Set key '{key}' (expiry={expiry})")
        except redis.RedisError as e:
            logger.exception(f"Error setting key '{key}': {e}")
            raise

    def get(self, key: str) -> Optional[Any]:
        """Gets a value from Redis by key.

        Returns:
            Value (parsed from JSON if possible), or None if key doesn't exist
        """
        try:
            value = self.client.get(key)
        except redis.RedisError as e:
            logger.exception(f"Error getting key '{key}': {e}")
            raise

        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    def expire(self, key: str, expiry: int) -> bool:
        """Resets the time to live of a key. Returns False if it is gone."""
        return bool(self.client.expire(key, expiry))

    def delete(self, *keys: str) -> int:
        return self.client.delete(*keys)

    def lock(self, name: str, timeout: float, blocking_timeout: float):
        """Returns a redis-py Lock usable across processes."""
        return self.client.lock(name, timeout=timeout, blocking_timeout=blocking_timeout)

    def close(self):
        """Closes the Redis connection."""
        if self.client:
            self.client.close()
            logger.info("Redis connection closed.")
