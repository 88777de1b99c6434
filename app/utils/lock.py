from contextlib import contextmanager
import time
import uuid
from app.store.redis_conn import get_redis


class SessionBusyError(RuntimeError):
    pass


@contextmanager
def session_lock(session_id: str, ttl_ms: int = 5000, spins: int = 5):
    """
    Single-writer guard per login session.
    The state machines assume one poll at a time per transaction; overlapping
    requests for the same session are turned away here.
    """
    r = get_redis()
    key = f"lock:authsession:{session_id}"
    token = uuid.uuid4().hex
    acquired = r.set(key, token, px=ttl_ms, nx=True)

    try:
        if not acquired:
            for _ in range(spins):
                time.sleep(0.1)
                if r.set(key, token, px=ttl_ms, nx=True):
                    acquired = True
                    break

            if not acquired:
                raise SessionBusyError(f"Could not acquire lock for session {session_id}")

        yield
    finally:
        if acquired:
            # Release only if we own it
            script = """
            if redis.call("get", KEYS[1]) == ARGV[1] then
                return redis.call("del", KEYS[1])
            else
                return 0
            end
            """
            r.eval(script, 1, key, token)
