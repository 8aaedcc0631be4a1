from typing import Any, List, Literal, Optional
from pydantic import BaseModel, Field

from participant_registry.core.registry import BULK_VERIFY_MAX

# Role and length bounds are NOT enforced here: the registry reports them as
# INVALID_ROLE / INVALID_NAME / DESCRIPTION_TOO_LONG with its own codes.

class RegisterRequest(BaseModel):
    role: str
    name: str
    description: str = ""

class TargetRequest(BaseModel):
    target: str

class ProfileRequest(BaseModel):
    name: str
    description: str = ""

class ChangeRoleRequest(BaseModel):
    target: str
    newRole: str

class SetAdminRequest(BaseModel):
    newAdmin: str = Field(min_length=1)

class BulkVerifyRequest(BaseModel):
    targets: List[str] = Field(default_factory=list, max_length=BULK_VERIFY_MAX)

class RegistryResponse(BaseModel):
    ok: bool
    value: Any = None
    error: Optional[str] = None

class UserInfo(BaseModel):
    role: str
    name: str
    description: str
    registeredAt: int
    verified: bool
    active: bool
    verifier: Optional[str] = None

class UserInfoResponse(BaseModel):
    ok: Literal[True] = True
    value: Optional[UserInfo] = None
