from redis import ConnectionPool, Redis
from app.settings import settings

# One pool per process; every flow invocation borrows from it.
_pool = None


def get_redis() -> Redis:
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(settings.REDIS_URL, decode_responses=True)
    return Redis(connection_pool=_pool)
