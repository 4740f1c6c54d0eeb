"""Redis connection for per-user session entries.

The cache holds one key per logged-in user (the user id as a string) whose
value is the refresh token issued at login/signup.
"""

import os
from typing import Optional

import redis
from dotenv import load_dotenv

load_dotenv()

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Singleton client (redis-py connects lazily on first command)
_redis_client: Optional[redis.Redis] = None


def get_cache() -> redis.Redis:
    """Get or create the shared Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis_client
