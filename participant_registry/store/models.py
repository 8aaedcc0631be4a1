from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class Role(str, Enum):
    ADMIN = "admin"
    COMPANY = "company"
    FACILITY = "facility"
    REGULATOR = "regulator"

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        """Return the Role for a raw value, or None if it is not one of the fixed roles."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class UserRecord:
    role: str
    name: str
    description: str = ""
    # Ledger height at registration (immutable once set)
    registeredAt: int = 0
    verified: bool = False
    active: bool = True
    # Identity of the admin who verified this record (None until verified)
    verifier: Optional[str] = None


def _empty_role_counts() -> Dict[str, int]:
    return {r.value: 0 for r in Role}


@dataclass
class RegistryState:
    admin: str
    paused: bool = False
    users: Dict[str, UserRecord] = field(default_factory=dict)
    # role -> number of currently active members (maintained incrementally)
    roleCounts: Dict[str, int] = field(default_factory=_empty_role_counts)

    # Ledger height, owned by the hosting layer (core.ledger). Starts at 1.
    height: int = 1

    def __post_init__(self):
        # Every role has a bucket so decrements never miss
        for r in Role:
            self.roleCounts.setdefault(r.value, 0)
