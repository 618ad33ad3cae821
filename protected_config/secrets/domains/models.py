"""Domain models for secret protection."""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class DecryptResult:
    """Outcome of a decrypt attempt. A failed attempt is a normal result."""
    ok: bool
    value: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, plaintext: str) -> "DecryptResult":
        return cls(ok=True, value=plaintext)

    @classmethod
    def failure(cls, reason: str) -> "DecryptResult":
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class RewriteResult:
    """Summary of one rewrite pass over a secrets document."""
    path: Path
    exists: bool
    changed: bool = False
    protected_count: int = 0
