"""
Redis cache utility for generated question sets
"""
import redis
import json
import logging
import hashlib
from typing import Optional, Any, Sequence
from app.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Best-effort Redis cache keyed by generation request signature"""

    def __init__(self, url: str = None):
        url = settings.REDIS_URL if url is None else url
        self.redis_client = None
        if not url:
            logger.info("REDIS_URL not set. Caching disabled.")
            return
        try:
            self.redis_client = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    def generate_cache_key(
        self,
        topic: Optional[str],
        content: Optional[str],
        difficulty: str,
        num_questions: int,
        question_types: Sequence[str]
    ) -> str:
        """
        Generate deterministic cache key for generation parameters

        Content is hashed so arbitrarily long material yields a short key.

        Returns:
            Cache key string
        """
        content_hash = hashlib.sha256((content or "").encode()).hexdigest()[:16]
        topic_key = (topic or "").strip().lower()
        types_key = ",".join(question_types)
        return f"quiz:{topic_key}:{content_hash}:{difficulty}:{num_questions}:{types_key}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.info(f"Cache hit: {key}")
                return json.loads(value)
            logger.info(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(
        self,
        key: str,
        value: Any,
        ttl: int = None
    ) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (default from settings)

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        try:
            ttl = ttl or settings.DEFAULT_QUIZ_CACHE_TTL
            serialized = json.dumps(value)
            self.redis_client.setex(key, ttl, serialized)
            logger.info(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {str(e)}")
            return False


# Global instance
cache_service = CacheService()
