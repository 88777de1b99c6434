from typing import Dict

from app.settings import settings
from app.store.redis_conn import get_redis
from app.store.models import AuthSession

PREFIX = "authsession:"


def _key(session_id: str) -> str:
    return f"{PREFIX}{session_id}"


def load_notes(session_id: str) -> Dict[str, str]:
    r = get_redis()
    return dict(r.hgetall(_key(session_id)) or {})


def load_auth_session(session_id: str, user_id: str = "", username: str = "") -> AuthSession:
    return AuthSession(
        sessionId=session_id,
        userId=user_id,
        username=username or user_id,
        notes=load_notes(session_id),
    )


def save_auth_session(session: AuthSession) -> None:
    """
    Replace the stored notes with the session's current notes.
    An empty notes map removes the hash entirely.
    """
    r = get_redis()
    key = _key(session.sessionId)
    pipe = r.pipeline()
    pipe.delete(key)
    if session.notes:
        pipe.hset(key, mapping={k: str(v) for k, v in session.notes.items()})
        pipe.expire(key, int(settings.SESSION_TTL_SEC))
    pipe.execute()
