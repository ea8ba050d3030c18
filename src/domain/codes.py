"""
Verification code format, generation and the system clock.

Codes look like ``SMCBI-042917``: a fixed prefix, a dash and six decimal
digits. Codes are compared after uppercasing, and the format check is
deliberately loose (prefix plus minimum length) so that a code one
digit short or with extra trailing characters still reaches the store
lookup and fails there as NotFound.
"""

import random
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime

DEFAULT_PREFIX = "SMCBI"
DEFAULT_DIGITS = 6


class SystemClock:
    """
    Implements Clock protocol with the wall clock.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def now(self) -> datetime:
        return datetime.now(UTC)


def normalize_code(code: str) -> str:
    """Strip surrounding whitespace and uppercase."""
    return code.strip().upper()


def is_well_formed(code: str, prefix: str = DEFAULT_PREFIX, digits: int = DEFAULT_DIGITS) -> bool:
    """
    Loose format check on an already-normalized code.

    Requires the ``PREFIX-`` head and a total length of at least
    ``len("PREFIX-") + digits - 1`` (11 for ``SMCBI`` with six digits).
    The digit suffix itself is not validated.
    """
    head = f"{prefix}-"
    return code.startswith(head) and len(code) >= len(head) + digits - 1


@dataclass
class CodeGenerator:
    """
    Produces ``PREFIX-NNNNNN`` codes.

    Digits come from the OS CSPRNG unless another ``random.Random`` is
    injected. No uniqueness check is made against stored codes.
    """

    prefix: str = DEFAULT_PREFIX
    digits: int = DEFAULT_DIGITS
    rng: random.Random = field(default_factory=secrets.SystemRandom)

    def generate(self) -> str:
        suffix = "".join(self.rng.choice("0123456789") for _ in range(self.digits))
        return f"{self.prefix}-{suffix}"
