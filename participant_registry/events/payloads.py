from typing import Any, Dict
from participant_registry.settings import settings
from participant_registry.core.errors import RegistryResult
from participant_registry.utils.time import now_ms

# ledger operation -> change-event name
EVENT_NAMES: Dict[str, str] = {
    "register": "user_registered",
    "verify": "user_verified",
    "update_profile": "profile_updated",
    "deactivate": "user_deactivated",
    "change_role": "role_changed",
    "pause": "registry_paused",
    "unpause": "registry_unpaused",
    "set_admin": "admin_changed",
    "bulk_verify": "users_bulk_verified",
}


def idempotency_key(event: dict) -> str:
    return f"{event.get('event', 'unknown')}:{int(event.get('height') or 0)}"


def build_event(operation: str, caller: str, args: Dict[str, Any], result: RegistryResult, height: int) -> dict:
    """
    Change event for a committed transaction.
    `height` is the ledger height the transaction was applied at, so for
    user_registered it equals the new record's registeredAt.
    """
    data = dict(args)
    data["value"] = result.value
    event = {
        "event": EVENT_NAMES.get(operation, operation),
        "operation": operation,
        "caller": caller,
        "height": int(height),
        "ts": now_ms(),
        "version": settings.EVENT_PAYLOAD_VERSION,
        "data": data,
    }
    event["idempotencyKey"] = idempotency_key(event)
    return event
