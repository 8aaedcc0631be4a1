"""
Participant Registry State Machine
----------------------------------
Pure, I/O-free transitions over a RegistryState. Every mutating operation
runs its guards in a fixed order (paused -> existence -> authorization ->
input validation) and only then writes. A rejection returns a
RegistryResult carrying one ErrorKind and leaves the state untouched.

Persistence, locking and ledger height are the hosting layer's concern
(see core.ledger); this module never reads settings or Redis.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional

from participant_registry.core.errors import ErrorKind, RegistryInvariantError, RegistryResult
from participant_registry.store.models import RegistryState, Role, UserRecord

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
BULK_VERIFY_MAX = 10


def _name_ok(name: str) -> bool:
    # len() counts code points
    return 0 < len(name) <= MAX_NAME_LENGTH


def _description_ok(description: str) -> bool:
    return len(description) <= MAX_DESCRIPTION_LENGTH


class Registry:
    def __init__(self, state: Optional[RegistryState] = None, *, deployer: str = "deployer"):
        self.state = state if state is not None else RegistryState(admin=deployer)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _is_admin(self, caller: str) -> bool:
        return caller == self.state.admin

    def _record(self, identity: str) -> UserRecord:
        """Fetch a record whose existence was already checked."""
        rec = self.state.users.get(identity)
        if rec is None:
            raise RegistryInvariantError(f"record for {identity!r} vanished after existence check")
        return rec

    def _increment(self, role: str) -> None:
        if role not in self.state.roleCounts:
            raise RegistryInvariantError(f"no role-count bucket for {role!r}")
        self.state.roleCounts[role] += 1

    def _decrement(self, role: str) -> None:
        if role not in self.state.roleCounts:
            raise RegistryInvariantError(f"no role-count bucket for {role!r}")
        self.state.roleCounts[role] = max(0, self.state.roleCounts[role] - 1)

    # ------------------------------------------------------------------
    # mutating operations
    # ------------------------------------------------------------------
    def register(self, caller: str, role: str, name: str, description: str) -> RegistryResult:
        if self.state.paused:
            return RegistryResult.failure(ErrorKind.PAUSED)
        if caller in self.state.users:
            return RegistryResult.failure(ErrorKind.ALREADY_REGISTERED)
        parsed = Role.parse(role)
        if parsed is None:
            return RegistryResult.failure(ErrorKind.INVALID_ROLE)
        if not _name_ok(name):
            return RegistryResult.failure(ErrorKind.INVALID_NAME)
        if not _description_ok(description):
            return RegistryResult.failure(ErrorKind.DESCRIPTION_TOO_LONG)

        self.state.users[caller] = UserRecord(
            role=parsed.value,
            name=name,
            description=description,
            registeredAt=self.state.height,
        )
        self._increment(parsed.value)
        return RegistryResult.success()

    def verify(self, caller: str, target: str) -> RegistryResult:
        """Admin-only, whatever the target's role: regulators cannot self- or peer-verify."""
        if self.state.paused:
            return RegistryResult.failure(ErrorKind.PAUSED)
        if target not in self.state.users:
            return RegistryResult.failure(ErrorKind.NOT_REGISTERED)
        if not self._is_admin(caller):
            return RegistryResult.failure(ErrorKind.UNAUTHORIZED)
        rec = self._record(target)
        if rec.verified:
            return RegistryResult.failure(ErrorKind.ALREADY_VERIFIED)

        rec.verified = True
        rec.verifier = caller
        return RegistryResult.success()

    def update_profile(self, caller: str, name: str, description: str) -> RegistryResult:
        if self.state.paused:
            return RegistryResult.failure(ErrorKind.PAUSED)
        if caller not in self.state.users:
            return RegistryResult.failure(ErrorKind.NOT_REGISTERED)
        if not _name_ok(name):
            return RegistryResult.failure(ErrorKind.INVALID_NAME)
        if not _description_ok(description):
            return RegistryResult.failure(ErrorKind.DESCRIPTION_TOO_LONG)

        rec = self._record(caller)
        rec.name = name
        rec.description = description
        return RegistryResult.success()

    def deactivate(self, caller: str, target: str) -> RegistryResult:
        if self.state.paused:
            return RegistryResult.failure(ErrorKind.PAUSED)
        if target not in self.state.users:
            return RegistryResult.failure(ErrorKind.NOT_REGISTERED)
        if not (self._is_admin(caller) or caller == target):
            return RegistryResult.failure(ErrorKind.UNAUTHORIZED)
        rec = self._record(target)
        # An inactive record reports NOT_REGISTERED, same as a missing one.
        if not rec.active:
            return RegistryResult.failure(ErrorKind.NOT_REGISTERED)

        rec.active = False
        self._decrement(rec.role)
        return RegistryResult.success()

    def change_role(self, caller: str, target: str, new_role: str) -> RegistryResult:
        if self.state.paused:
            return RegistryResult.failure(ErrorKind.PAUSED)
        if target not in self.state.users:
            return RegistryResult.failure(ErrorKind.NOT_REGISTERED)
        if not self._is_admin(caller):
            return RegistryResult.failure(ErrorKind.UNAUTHORIZED)
        parsed = Role.parse(new_role)
        if parsed is None:
            return RegistryResult.failure(ErrorKind.INVALID_ROLE)
        rec = self._record(target)
        if not rec.active:
            return RegistryResult.failure(ErrorKind.NOT_REGISTERED)

        self._decrement(rec.role)
        rec.role = parsed.value
        self._increment(parsed.value)
        return RegistryResult.success()

    def pause(self, caller: str) -> RegistryResult:
        if not self._is_admin(caller):
            return RegistryResult.failure(ErrorKind.UNAUTHORIZED)
        self.state.paused = True
        return RegistryResult.success()

    def unpause(self, caller: str) -> RegistryResult:
        if not self._is_admin(caller):
            return RegistryResult.failure(ErrorKind.UNAUTHORIZED)
        self.state.paused = False
        return RegistryResult.success()

    def set_admin(self, caller: str, new_admin: str) -> RegistryResult:
        # newAdmin need not be registered: an admin may be bootstrapped first.
        if not self._is_admin(caller):
            return RegistryResult.failure(ErrorKind.UNAUTHORIZED)
        self.state.admin = new_admin
        return RegistryResult.success()

    def bulk_verify(self, caller: str, targets: Iterable[str]) -> RegistryResult:
        """
        Verify up to BULK_VERIFY_MAX targets. Only the batch-level guards
        (paused, caller is admin) can reject the call; per-target rejections
        are skipped and the success value is the number actually verified.
        """
        batch: List[str] = list(targets)
        if len(batch) > BULK_VERIFY_MAX:
            raise ValueError(f"bulk verify accepts at most {BULK_VERIFY_MAX} targets, got {len(batch)}")
        if self.state.paused:
            return RegistryResult.failure(ErrorKind.PAUSED)
        if not self._is_admin(caller):
            return RegistryResult.failure(ErrorKind.UNAUTHORIZED)

        verified = 0
        for target in batch:
            if self.verify(caller, target).ok:
                verified += 1
        return RegistryResult.success(verified)

    # ------------------------------------------------------------------
    # read-only queries (never fail)
    # ------------------------------------------------------------------
    def get_user_info(self, identity: str) -> Optional[UserRecord]:
        rec = self.state.users.get(identity)
        # hand out a copy so callers cannot mutate the table
        return replace(rec) if rec is not None else None

    def is_registered(self, identity: str) -> bool:
        return identity in self.state.users

    def is_verified(self, identity: str) -> bool:
        rec = self.state.users.get(identity)
        return bool(rec and rec.verified)

    def has_role(self, identity: str, role: str) -> bool:
        rec = self.state.users.get(identity)
        if rec is None:
            return False
        return rec.verified and rec.active and rec.role == role

    def get_role_count(self, role: str) -> int:
        key = role.value if isinstance(role, Role) else role
        return int(self.state.roleCounts.get(key, 0))

    def get_contract_admin(self) -> str:
        return self.state.admin

    def is_contract_paused(self) -> bool:
        return self.state.paused
