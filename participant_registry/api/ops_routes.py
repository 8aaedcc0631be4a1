from fastapi import APIRouter, Depends, HTTPException, Header
from participant_registry.settings import settings
from participant_registry.events.outbox import recent_events
import participant_registry.core.ledger as ledger
import participant_registry.observability.metrics as metrics

router = APIRouter(prefix="/ops", tags=["ops"])

def require_ops(x_ops_key: str = Header(default="", alias="x-ops-key")):
    if not settings.OPS_RBAC_ENABLED:
        return
    # Secure default: if enabled but no key configured, reject all.
    if not settings.OPS_API_KEY:
        raise HTTPException(status_code=403, detail="Ops access disabled (no key configured)")
    if x_ops_key != settings.OPS_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid ops key")

@router.get("/state")
def get_state_summary(_=Depends(require_ops)):
    """Compact registry summary for dashboards (no profile text)."""
    state = ledger.snapshot().state
    users = state.users.values()
    return {
        "admin": state.admin,
        "paused": bool(state.paused),
        "height": int(state.height),
        "registered": len(state.users),
        "verified": sum(1 for u in users if u.verified),
        "active": sum(1 for u in users if u.active),
        "roleCounts": dict(state.roleCounts),
    }

@router.get("/metrics")
def get_metrics(_=Depends(require_ops)):
    return metrics.get_metrics_snapshot()

@router.get("/events")
def get_recent_events(limit: int = 20, _=Depends(require_ops)):
    """Most recent committed change events, newest first."""
    limit = max(1, min(int(limit), int(settings.RECENT_EVENTS_MAX)))
    return {"events": recent_events(limit)}
