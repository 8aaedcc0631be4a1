from dataclasses import asdict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from participant_registry.api.auth import require_api_key, require_caller
from participant_registry.api.schemas import (
    BulkVerifyRequest,
    ChangeRoleRequest,
    ProfileRequest,
    RegisterRequest,
    RegistryResponse,
    SetAdminRequest,
    TargetRequest,
    UserInfoResponse,
)
from participant_registry.core.errors import ErrorKind, RegistryResult
from participant_registry.observability.logging import log
from participant_registry.utils.lock import LockTimeout
import participant_registry.core.ledger as ledger

router = APIRouter(prefix="/registry", tags=["registry"], dependencies=[Depends(require_api_key)])

# Rejection -> HTTP status. The body always carries the numeric code in `value`.
ERROR_STATUS = {
    ErrorKind.ALREADY_REGISTERED: 409,
    ErrorKind.NOT_REGISTERED: 404,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.INVALID_ROLE: 422,
    ErrorKind.INVALID_NAME: 422,
    ErrorKind.NOT_VERIFIED: 409,
    ErrorKind.ALREADY_VERIFIED: 409,
    ErrorKind.PAUSED: 423,
    ErrorKind.INVALID_ADDRESS: 422,
    ErrorKind.DESCRIPTION_TOO_LONG: 422,
}


def _respond(result: RegistryResult) -> JSONResponse:
    status = 200 if result.ok else ERROR_STATUS.get(result.error, 400)
    return JSONResponse(status_code=status, content=result.to_dict())


async def _run(operation: str, caller: str, **args) -> JSONResponse:
    try:
        result = await run_in_threadpool(ledger.execute, operation, caller, **args)
    except LockTimeout as e:
        log(event="registry_lock_timeout", operation=operation, caller=caller, error=str(e))
        return JSONResponse(status_code=503, content={"ok": False, "value": None, "error": "BUSY"})
    return _respond(result)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
@router.post("/register", response_model=RegistryResponse)
async def register(body: RegisterRequest, caller: str = Depends(require_caller)):
    return await _run("register", caller, role=body.role, name=body.name, description=body.description)


@router.post("/verify", response_model=RegistryResponse)
async def verify(body: TargetRequest, caller: str = Depends(require_caller)):
    return await _run("verify", caller, target=body.target)


@router.post("/profile", response_model=RegistryResponse)
async def update_profile(body: ProfileRequest, caller: str = Depends(require_caller)):
    return await _run("update_profile", caller, name=body.name, description=body.description)


@router.post("/deactivate", response_model=RegistryResponse)
async def deactivate(body: TargetRequest, caller: str = Depends(require_caller)):
    return await _run("deactivate", caller, target=body.target)


@router.post("/change-role", response_model=RegistryResponse)
async def change_role(body: ChangeRoleRequest, caller: str = Depends(require_caller)):
    return await _run("change_role", caller, target=body.target, new_role=body.newRole)


@router.post("/pause", response_model=RegistryResponse)
async def pause(caller: str = Depends(require_caller)):
    return await _run("pause", caller)


@router.post("/unpause", response_model=RegistryResponse)
async def unpause(caller: str = Depends(require_caller)):
    return await _run("unpause", caller)


@router.post("/admin", response_model=RegistryResponse)
async def set_admin(body: SetAdminRequest, caller: str = Depends(require_caller)):
    return await _run("set_admin", caller, new_admin=body.newAdmin)


@router.post("/bulk-verify", response_model=RegistryResponse)
async def bulk_verify(body: BulkVerifyRequest, caller: str = Depends(require_caller)):
    return await _run("bulk_verify", caller, targets=list(body.targets))


# ---------------------------------------------------------------------------
# Queries (never fail, no caller identity needed)
# ---------------------------------------------------------------------------
@router.get("/users/{identity}", response_model=UserInfoResponse)
def get_user_info(identity: str):
    rec = ledger.snapshot().get_user_info(identity)
    return {"ok": True, "value": asdict(rec) if rec is not None else None}


@router.get("/users/{identity}/registered", response_model=RegistryResponse)
def is_registered(identity: str):
    return {"ok": True, "value": ledger.snapshot().is_registered(identity)}


@router.get("/users/{identity}/verified", response_model=RegistryResponse)
def is_verified(identity: str):
    return {"ok": True, "value": ledger.snapshot().is_verified(identity)}


@router.get("/users/{identity}/roles/{role}", response_model=RegistryResponse)
def has_role(identity: str, role: str):
    return {"ok": True, "value": ledger.snapshot().has_role(identity, role)}


@router.get("/roles/{role}/count", response_model=RegistryResponse)
def get_role_count(role: str):
    return {"ok": True, "value": ledger.snapshot().get_role_count(role)}


@router.get("/admin", response_model=RegistryResponse)
def get_contract_admin():
    return {"ok": True, "value": ledger.snapshot().get_contract_admin()}


@router.get("/paused", response_model=RegistryResponse)
def is_contract_paused():
    return {"ok": True, "value": ledger.snapshot().is_contract_paused()}
