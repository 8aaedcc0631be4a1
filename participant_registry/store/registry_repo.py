import json
from dataclasses import asdict, fields as dc_fields
from participant_registry.settings import settings
from participant_registry.store.redis_conn import get_redis
from participant_registry.store.models import RegistryState, UserRecord, Role
from participant_registry.observability.logging import log


# Values for record fields missing from older documents
RECORD_DEFAULTS = {
    "name": "",
    "description": "",
    "registeredAt": 0,
    "verified": False,
    "active": True,
    "verifier": None,
}


def _key() -> str:
    return settings.REGISTRY_STATE_KEY


def _migrate_state_data(data: dict) -> dict:
    """
    Backward-compat migration for the stored registry document.
    - Drops top-level and per-record keys that are not declared fields.
    - Drops records with no known role; backfills missing record fields.
    - Coerces role counts to non-negative ints and adds missing role buckets.
    - Backfills `height` for documents written before it was persisted.
    """
    removed_top_fields = 0
    removed_record_fields = 0
    backfilled_record_fields = 0
    dropped_records = []

    allowed_top = {f.name for f in dc_fields(RegistryState)}
    for k in list(data.keys()):
        if k not in allowed_top:
            del data[k]
            removed_top_fields += 1

    allowed_rec = {f.name for f in dc_fields(UserRecord)}
    users = data.get("users")
    if not isinstance(users, dict):
        users = {}
    for identity in list(users.keys()):
        rec = users[identity]
        # A record without a known role cannot be counted or checked; drop it
        if not isinstance(rec, dict) or Role.parse(rec.get("role")) is None:
            del users[identity]
            dropped_records.append(identity)
            continue
        for k in list(rec.keys()):
            if k not in allowed_rec:
                del rec[k]
                removed_record_fields += 1
        for k, default in RECORD_DEFAULTS.items():
            if k not in rec:
                rec[k] = default
                backfilled_record_fields += 1
    data["users"] = users

    counts = data.get("roleCounts")
    if not isinstance(counts, dict):
        counts = {}
    clean_counts = {}
    for r in Role:
        try:
            clean_counts[r.value] = max(0, int(counts.get(r.value, 0) or 0))
        except (TypeError, ValueError):
            clean_counts[r.value] = 0
    data["roleCounts"] = clean_counts

    if not data.get("height"):
        # Never hand out a height below any recorded registration
        seen = [int((u or {}).get("registeredAt") or 0) for u in users.values() if isinstance(u, dict)]
        data["height"] = (max(seen) + 1) if seen else 1

    if removed_top_fields or removed_record_fields or backfilled_record_fields or dropped_records:
        log(
            event="registry_state_migrated",
            removedTopFields=int(removed_top_fields),
            removedRecordFields=int(removed_record_fields),
            backfilledRecordFields=int(backfilled_record_fields),
            droppedRecords=dropped_records,
            users=len(users),
        )
    return data


def new_state() -> RegistryState:
    return RegistryState(admin=settings.REGISTRY_DEPLOYER)


def load_state() -> RegistryState:
    r = get_redis()
    raw = r.get(_key())
    if not raw:
        return new_state()

    data = _migrate_state_data(json.loads(raw))
    users = {
        identity: UserRecord(**rec)
        for identity, rec in data["users"].items()
        if isinstance(rec, dict)
    }
    return RegistryState(
        admin=str(data.get("admin") or settings.REGISTRY_DEPLOYER),
        paused=bool(data.get("paused", False)),
        users=users,
        roleCounts=data["roleCounts"],
        height=int(data["height"]),
    )


def dump_state(state: RegistryState) -> str:
    return json.dumps(asdict(state))


def save_state(state: RegistryState) -> None:
    r = get_redis()
    r.set(_key(), dump_state(state))
