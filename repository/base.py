# repository/base.py
from redis.asyncio import Redis
from config.cache import get_redis
from config.settings import settings


class RedisRepository:
    """
    Shared plumbing: lazily resolved client and namespaced keys. Every write
    sets the TTL again.
    """

    namespace: str = ""

    def __init__(self, ttl_seconds: int = settings.PERSISTENCE_TTL_SECONDS) -> None:
        self._ttl = int(ttl_seconds)

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @classmethod
    def _key(cls, *parts: str) -> str:
        return ":".join((cls.namespace, *parts))
