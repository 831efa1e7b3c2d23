"""Redis infrastructure — client."""

from .client import close_redis, get_redis

__all__ = ["close_redis", "get_redis"]
