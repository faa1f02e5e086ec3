"""
Redis Connection
"""
import logging

import redis

from marketplace.core.config import get_settings

logger = logging.getLogger(__name__)

_redis_client = None


def get_redis_client() -> redis.Redis:
    """Get Redis client (singleton)"""
    global _redis_client
    
    if _redis_client is None:
        settings = get_settings()
        _redis_client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )
    
    return _redis_client


def test_redis_connection() -> bool:
    """Test Redis connection"""
    try:
        client = get_redis_client()
        client.ping()
        return True
    except redis.RedisError as e:
        logger.warning(f"❌ Redis connection failed: {e}")
        return False
