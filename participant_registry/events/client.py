from typing import Optional, Tuple
import httpx
from participant_registry.settings import settings


def send_event_http(payload: dict, headers: dict, timeout: float) -> Tuple[bool, int, Optional[str]]:
    """
    POST one change event to the subscriber webhook.
    Returns (success, status_code, error_msg); status_code is 0 on transport errors.
    """
    try:
        with httpx.Client(timeout=timeout) as client:
            resp = client.post(settings.EVENT_WEBHOOK_URL, json=payload, headers=headers)
    except httpx.HTTPError as e:
        return False, 0, f"{type(e).__name__}:{str(e)[:200]}"

    if 200 <= resp.status_code < 300:
        return True, resp.status_code, None
    return False, resp.status_code, (resp.text or "")[:300]
