"""
Observability Metrics
---------------------
Lightweight Redis counters for flow outcomes plus a bounded list of remote
verifier latencies, summarised by get_stats_snapshot() for /admin/stats.
Metrics are best-effort: a Redis hiccup here never changes a flow result.
"""
from __future__ import annotations
from typing import Dict, List

from redis.exceptions import RedisError

from app.store.redis_conn import get_redis

FLOWS = ("auth", "enroll")

K_OUTCOME = "metrics:ivalt:{flow}:{outcome}"   # INCR
K_REMOTE_LAT = "metrics:ivalt:remote:latencies"  # LPUSH ms

_MAX_SAMPLES = 500  # cap to bound percentile computation cost


def _percentile(data: List[float], p: float) -> float:
    """Deterministic percentile (nearest-rank on sorted data)."""
    if not data:
        return 0.0
    d = sorted(data)
    k = max(1, int(round(p * len(d))))
    return float(d[k - 1])


def increment_outcome(flow: str, outcome: str) -> None:
    try:
        get_redis().incr(K_OUTCOME.format(flow=flow, outcome=outcome), 1)
    except RedisError:
        pass


def record_remote_latency(ms: int) -> None:
    try:
        r = get_redis()
        r.lpush(K_REMOTE_LAT, int(ms))
        r.ltrim(K_REMOTE_LAT, 0, _MAX_SAMPLES - 1)
    except RedisError:
        pass


def get_stats_snapshot() -> Dict:
    r = get_redis()
    outcomes: Dict[str, Dict[str, int]] = {}
    for flow in FLOWS:
        prefix = K_OUTCOME.format(flow=flow, outcome="")
        counts = {}
        for key in r.scan_iter(match=f"{prefix}*"):
            counts[key[len(prefix):]] = int(r.get(key) or 0)
        outcomes[flow] = counts

    lat = [float(x) for x in (r.lrange(K_REMOTE_LAT, 0, _MAX_SAMPLES - 1) or [])]
    return {
        "outcomes": outcomes,
        "remoteLatencyMs": {
            "samples": len(lat),
            "p50": _percentile(lat, 0.50),
            "p95": _percentile(lat, 0.95),
        },
    }
