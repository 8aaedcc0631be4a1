from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional


class ErrorKind(IntEnum):
    """Registry rejection codes. Numbering is externally observable: never renumber."""
    ALREADY_REGISTERED = 100
    NOT_REGISTERED = 101
    UNAUTHORIZED = 102
    INVALID_ROLE = 103
    INVALID_NAME = 104
    NOT_VERIFIED = 105  # reserved, no operation returns it yet
    ALREADY_VERIFIED = 106
    PAUSED = 107
    INVALID_ADDRESS = 108  # reserved, no operation returns it yet
    DESCRIPTION_TOO_LONG = 109


@dataclass(frozen=True)
class RegistryResult:
    """
    Tagged outcome of a mutating registry operation.
    - ok=True: `value` carries the success value (True, or a count for bulk verify)
    - ok=False: `error` carries exactly one ErrorKind
    """
    ok: bool
    value: Any = True
    error: Optional[ErrorKind] = None

    @classmethod
    def success(cls, value: Any = True) -> "RegistryResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind) -> "RegistryResult":
        return cls(ok=False, value=int(kind), error=kind)

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "value": self.value,
            "error": self.error.name if self.error is not None else None,
        }


class RegistryInvariantError(RuntimeError):
    """Internal state is inconsistent. This is a defect, never an expected rejection."""
