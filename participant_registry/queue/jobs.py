from participant_registry.events.outbox import process_event
from participant_registry.events.payloads import idempotency_key
from participant_registry.observability.logging import log

def deliver_event_job(event: dict):
    """
    Background job delivering one change event to the webhook subscriber.
    Retryable failures raise, and RQ reschedules per the job's Retry policy.
    """
    try:
        log(event="event_job_start", idempotencyKey=idempotency_key(event))
        return process_event(event)
    except Exception as e:
        log(event="event_job_exception", idempotencyKey=idempotency_key(event), error=str(e))
        raise
