"""
Registry Metrics & Ops Snapshot
-------------------------------
Lightweight Redis counters for transaction outcomes and event delivery, plus
a single snapshot function consumed by /ops/metrics. Missing keys (first boot)
read as zero.
"""
from __future__ import annotations
import time
from typing import Dict, List, Tuple
from participant_registry.store.redis_conn import get_redis

K_TX_LAT = "metrics:tx:latencies"            # LPUSH ms
K_TX_OK = "metrics:tx:committed"             # HINCRBY operation
K_TX_REJ = "metrics:tx:rejected"             # HINCRBY "operation:ERROR_KIND"

K_EV_ATT = "metrics:events:attempts"         # INCR
K_EV_OK = "metrics:events:delivered"         # INCR
K_EV_FAIL_RECENT = "metrics:events:failed_recent"  # LPUSH idempotency key (trim window)

_MAX_SAMPLES = 500  # cap to bound percentile computation cost

def _percentile(data: List[float], p: float) -> float:
    """Deterministic percentile (nearest-rank on sorted data)."""
    if not data:
        return 0.0
    d = sorted(data)
    k = max(1, int(round(p * len(d))))
    return float(d[k - 1])

def _now_s() -> int:
    return int(time.time())

def record_transaction(operation: str, error_kind: str = "", ms: int = 0) -> None:
    r = get_redis()
    if error_kind:
        r.hincrby(K_TX_REJ, f"{operation}:{error_kind}", 1)
    else:
        r.hincrby(K_TX_OK, operation, 1)
    try:
        ms = int(ms)
    except (TypeError, ValueError):
        return
    r.lpush(K_TX_LAT, ms)
    r.ltrim(K_TX_LAT, 0, _MAX_SAMPLES - 1)

def increment_event_attempt() -> None:
    r = get_redis()
    r.incr(K_EV_ATT, 1)

def increment_event_delivered() -> None:
    r = get_redis()
    r.incr(K_EV_OK, 1)

def record_failed_event(idempotency_key: str) -> None:
    """Track recent delivery failures for incident triage."""
    if not idempotency_key:
        return
    r = get_redis()
    r.lpush(K_EV_FAIL_RECENT, idempotency_key)
    r.ltrim(K_EV_FAIL_RECENT, 0, 49)  # keep last 50

def _read_latency_list(key: str) -> List[float]:
    r = get_redis()
    out: List[float] = []
    for x in r.lrange(key, 0, _MAX_SAMPLES - 1) or []:
        try:
            out.append(float(x) / 1000.0)  # seconds
        except (TypeError, ValueError):
            continue
    return out

def _p50_p95(latencies_s: List[float]) -> Tuple[float, float]:
    if not latencies_s:
        return 0.0, 0.0
    return _percentile(latencies_s, 0.50), _percentile(latencies_s, 0.95)

def _int_hash(key: str) -> Dict[str, int]:
    r = get_redis()
    out: Dict[str, int] = {}
    for k, v in (r.hgetall(key) or {}).items():
        try:
            out[str(k)] = int(v)
        except (TypeError, ValueError):
            continue
    return out

def get_metrics_snapshot() -> dict:
    """
    Return a dict shaped for /ops/metrics consumers.
    Fields:
      - committed (per operation), rejected (per "operation:ERROR_KIND")
      - commit_rate: committed / (committed + rejected), percent
      - p50_tx_latency, p95_tx_latency (seconds, most recent samples)
      - event_delivery_success_rate, recent_failed_events
    """
    r = get_redis()

    committed = _int_hash(K_TX_OK)
    rejected = _int_hash(K_TX_REJ)
    n_ok = sum(committed.values())
    n_rej = sum(rejected.values())
    commit_rate = (n_ok / (n_ok + n_rej)) * 100.0 if (n_ok + n_rej) else 0.0

    p50, p95 = _p50_p95(_read_latency_list(K_TX_LAT))

    ev_ok = int(r.get(K_EV_OK) or 0)
    ev_att = int(r.get(K_EV_ATT) or 0)
    ev_rate = (ev_ok / ev_att) * 100.0 if ev_att > 0 else (100.0 if ev_ok > 0 else 0.0)

    recent_failed = [str(x) for x in (r.lrange(K_EV_FAIL_RECENT, 0, 19) or [])]

    return {
        "committed": committed,
        "rejected": rejected,
        "commit_rate": round(commit_rate, 3),
        "p50_tx_latency": round(p50, 3),
        "p95_tx_latency": round(p95, 3),
        "event_delivery_success_rate": round(ev_rate, 3),
        "recent_failed_events": recent_failed,
        "snapshot_at": _now_s(),
    }
