"""
Registry Transaction Host
-------------------------
Runs each registry operation as one serialized transaction:

    lock -> load state -> apply (guards, then writes) -> commit -> advance height

A rejected operation is never saved, so the stored document (and the ledger
height) only ever changes on success. Committed transactions are logged,
counted and published as change events after the lock is released; failures
in those side effects are logged and never change the returned result.
"""
from __future__ import annotations

import time
from typing import Any, Callable, Dict

from participant_registry.core.errors import RegistryResult
from participant_registry.core.registry import Registry
from participant_registry.events.outbox import publish_event
from participant_registry.events.payloads import build_event
from participant_registry.observability.logging import log
from participant_registry.store.registry_repo import load_state, save_state
from participant_registry.utils.lock import registry_lock
import participant_registry.observability.metrics as metrics

# operation -> Registry method
MUTATIONS: Dict[str, Callable[..., RegistryResult]] = {
    "register": Registry.register,
    "verify": Registry.verify,
    "update_profile": Registry.update_profile,
    "deactivate": Registry.deactivate,
    "change_role": Registry.change_role,
    "pause": Registry.pause,
    "unpause": Registry.unpause,
    "set_admin": Registry.set_admin,
    "bulk_verify": Registry.bulk_verify,
}


def execute(operation: str, caller: str, **args: Any) -> RegistryResult:
    fn = MUTATIONS.get(operation)
    if fn is None:
        raise ValueError(f"unknown registry operation: {operation}")

    start = time.monotonic()
    with registry_lock():
        state = load_state()
        height = state.height
        result = fn(Registry(state), caller, **args)
        if result.ok:
            state.height = height + 1
            save_state(state)
    elapsed_ms = int((time.monotonic() - start) * 1000)

    if not result.ok:
        log(
            event="registry_rejected",
            operation=operation,
            caller=caller,
            error=result.error.name,
            code=int(result.error),
        )
        _record_metrics(operation, result.error.name, elapsed_ms)
        return result

    log(event="registry_committed", operation=operation, caller=caller, height=height, elapsedMs=elapsed_ms)
    _record_metrics(operation, "", elapsed_ms)

    # The transaction is already saved; a failed publish must not turn it into an error
    try:
        publish_event(build_event(operation, caller, args, result, height))
    except Exception as e:
        log(
            event="event_publish_failed",
            operation=operation,
            height=height,
            error=f"{type(e).__name__}: {e}",
        )
    return result


def _record_metrics(operation: str, error_kind: str, elapsed_ms: int) -> None:
    try:
        metrics.record_transaction(operation, error_kind, elapsed_ms)
    except Exception as e:
        log(event="metrics_record_failed", operation=operation, error=f"{type(e).__name__}: {e}")


def snapshot() -> Registry:
    """Read-only view for queries; not locked, reads the last committed document."""
    return Registry(load_state())
