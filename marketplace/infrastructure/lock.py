"""
Redis lock that keeps periodic sweeps from overlapping
"""
import logging
import uuid

import redis

logger = logging.getLogger(__name__)


class SweepLock:
    """
    Single-attempt SET NX PX lock

    A sweep that finds the lock held is skipped rather than queued, so
    there is no retry loop here.
    """
    
    def __init__(self, redis_client: redis.Redis, expire_ms: int = 180000):
        self.redis = redis_client
        self.lock_expire_ms = expire_ms
        
        # Lua script for atomic unlock
        self.unlock_script = """
        if redis.call("GET", KEYS[1]) == ARGV[1] then
            return redis.call("DEL", KEYS[1])
        else
            return 0
        end
        """
    
    @staticmethod
    def key_for(name: str) -> str:
        return f"marketplace:sweep-lock:{name}"
    
    def acquire(self, name: str):
        """
        Try to take the lock once
        
        Returns: request_id if acquired, None if another sweep holds it
        """
        request_id = str(uuid.uuid4())
        acquired = self.redis.set(
            self.key_for(name),
            request_id,
            nx=True,
            px=self.lock_expire_ms,
        )
        return request_id if acquired else None
    
    def release(self, name: str, request_id: str):
        """Release lock only if we own it"""
        try:
            self.redis.eval(self.unlock_script, 1, self.key_for(name), request_id)
        except redis.RedisError as e:
            logger.warning(f"⚠️  Error releasing sweep lock {name}: {e}")
    
