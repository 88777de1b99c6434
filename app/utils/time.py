import time


def now_ms() -> int:
    return int(time.time() * 1000)


def elapsed_ms(started_at_ms: int, now: int = 0) -> int:
    """Milliseconds since `started_at_ms`, clamped to >= 0."""
    return max(0, int(now or now_ms()) - int(started_at_ms))
