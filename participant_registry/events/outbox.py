import json
import random
import time
from typing import List, Optional

from participant_registry.settings import settings
from participant_registry.observability.logging import log, redact
from participant_registry.store.redis_conn import get_redis
from participant_registry.events.payloads import idempotency_key
import participant_registry.events.client as event_client
import participant_registry.observability.metrics as metrics

K_RECENT = "registry:events:recent"
K_DLQ = "registry:events:dlq"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _calc_backoff(attempt: int) -> int:
    """Exponential backoff with jitter (ms)."""
    base = int(settings.EVENT_BASE_DELAY_MS or 1000)
    max_delay = int(settings.EVENT_MAX_DELAY_MS or 600000)
    delay = base * (2 ** (attempt - 1))
    jitter = delay * 0.1 * random.uniform(-1, 1)
    return min(max_delay, int(delay + jitter))


def retry_intervals() -> List[int]:
    """RQ retry schedule in whole seconds, one entry per retry after the first attempt."""
    retries = max(0, int(settings.EVENT_MAX_ATTEMPTS) - 1)
    return [max(1, _calc_backoff(i) // 1000) for i in range(1, retries + 1)]


def record_recent_event(event: dict) -> None:
    """Keep a capped copy for /ops/events; profile text is masked when PII redaction is on."""
    if settings.ENABLE_PII_REDACTION:
        event = redact(event)
    r = get_redis()
    r.lpush(K_RECENT, json.dumps(event))
    r.ltrim(K_RECENT, 0, int(settings.RECENT_EVENTS_MAX) - 1)


def recent_events(limit: int = 20) -> List[dict]:
    r = get_redis()
    out = []
    for raw in r.lrange(K_RECENT, 0, max(0, int(limit) - 1)) or []:
        try:
            out.append(json.loads(raw))
        except (TypeError, ValueError):
            continue
    return out


def publish_event(event: dict) -> Optional[str]:
    """
    Record a committed change event and, when a webhook is configured,
    enqueue its delivery. Returns the RQ job id (None if delivery is disabled).
    """
    record_recent_event(event)
    if not settings.EVENT_WEBHOOK_URL:
        return None

    # Lazy imports: jobs -> outbox
    from rq import Retry
    from participant_registry.queue.jobs import deliver_event_job
    from participant_registry.queue.rq_conn import get_queue

    intervals = retry_intervals()
    retry = Retry(max=len(intervals), interval=intervals) if intervals else None
    job = get_queue().enqueue(deliver_event_job, event, retry=retry)
    log(event="event_enqueued", changeEvent=event.get("event"), idempotencyKey=idempotency_key(event), jobId=job.id)
    return job.id


def process_event(event: dict) -> bool:
    """
    Deliver one change event.
    Returns True when delivered or terminally rejected (moved to the DLQ).
    Raises RuntimeError on retryable failures so RQ reschedules the job.
    """
    if not settings.EVENT_WEBHOOK_URL:
        log(event="event_delivery_disabled", idempotencyKey=idempotency_key(event))
        return True

    key = idempotency_key(event)
    headers = {
        "Idempotency-Key": key,
        "X-Event-Version": str(settings.EVENT_PAYLOAD_VERSION),
        "Content-Type": "application/json",
    }

    metrics.increment_event_attempt()
    success, status_code, error_msg = event_client.send_event_http(
        event,
        headers,
        timeout=float(settings.EVENT_TIMEOUT_SEC),
    )

    if success:
        metrics.increment_event_delivered()
        log(event="event_delivered", idempotencyKey=key, statusCode=status_code)
        return True

    metrics.record_failed_event(key)

    # Terminal checks for 4xx (except 429)
    if 400 <= status_code < 500 and status_code != 429:
        r = get_redis()
        r.lpush(K_DLQ, json.dumps({"event": event, "code": status_code, "error": error_msg, "deadAt": _now_ms()}))
        log(event="event_terminal_error", idempotencyKey=key, code=status_code)
        return True

    log(event="event_retry_scheduled", idempotencyKey=key, code=status_code, error=error_msg)
    raise RuntimeError(f"Event delivery failed: {status_code} {error_msg}")
