import json
import time
from participant_registry.settings import settings

# Free-text profile fields are the only PII the registry holds
SENSITIVE_KEYS = {"name", "description"}

def _redact_value(v):
    if isinstance(v, str) and len(v) > 0:
        return f"[REDACTED:{len(v)}chars]"
    if isinstance(v, dict):
        return {k: _redact_value(val) for k, val in v.items()}
    return v

def redact(fields: dict) -> dict:
    """Copy of `fields` with profile text masked, one nesting level deep."""
    clean_fields = {}
    for k, v in fields.items():
        if k in SENSITIVE_KEYS:
            clean_fields[k] = _redact_value(v)
        elif isinstance(v, dict):
            # e.g. an event's `data` block carrying name/description
            clean_fields[k] = {sk: (_redact_value(sv) if sk in SENSITIVE_KEYS else sv) for sk, sv in v.items()}
        else:
            clean_fields[k] = v
    return clean_fields

def log(event: str, **fields):
    payload = {"ts": int(time.time()), "event": event}

    if settings.ENABLE_PII_REDACTION:
        payload.update(redact(fields))
    else:
        payload.update(fields)

    print(json.dumps(payload, ensure_ascii=False, default=str))
