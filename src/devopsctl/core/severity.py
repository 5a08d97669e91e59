"""
Severity levels, their weights and process exit codes

Severity is a closed enumeration. Anything that is not one of the four
canonical uppercase strings carries weight 0 and exit code 0, so an invalid
value never outranks LOW and never raises.
"""

from enum import Enum
from typing import Iterable, List, Optional, Union


class Severity(str, Enum):
    """Finding severity, ordered LOW < MEDIUM < HIGH < CRITICAL"""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def weight(self) -> int:
        return _ORDINALS[self]

    @property
    def exit_code(self) -> int:
        return _ORDINALS[self]

    @classmethod
    def parse(cls, raw) -> Optional["Severity"]:
        """Exact, case-sensitive lookup. Returns None for unrecognized values."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw)
        except ValueError:
            return None

    @classmethod
    def ordered(cls) -> List["Severity"]:
        """All levels in ascending order"""
        return [cls.LOW, cls.MEDIUM, cls.HIGH, cls.CRITICAL]

    def __str__(self) -> str:
        return self.value


_ORDINALS = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

SeverityLike = Union[Severity, str, None]


def is_valid(raw) -> bool:
    """Check whether a raw value is one of the four recognized levels"""
    return Severity.parse(raw) is not None


def weight(level: SeverityLike) -> int:
    """Additive scoring weight: 1..4, or 0 for unrecognized values"""
    parsed = Severity.parse(level)
    return parsed.weight if parsed else 0


def exit_code(level: SeverityLike) -> int:
    """Process exit code: 1..4, or 0 for no/unrecognized severity"""
    parsed = Severity.parse(level)
    return parsed.exit_code if parsed else 0


def highest(levels: Iterable[SeverityLike]) -> Optional[Severity]:
    """Return the most severe recognized level, or None if there is none"""
    result = None
    for level in levels:
        parsed = Severity.parse(level)
        if parsed is not None and weight(parsed) > weight(result):
            result = parsed
    return result
