"""ScoreRecord value object and submission validation."""
import math
import re
from enum import Enum

from typeboard.domain.errors import ValidationError


NAME_ALLOWED_RE = re.compile(r"^[A-Za-z0-9 _.\-]+$")
NAME_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9 _.\-]")


class NamePolicy(str, Enum):
    STRICT = "strict"
    SANITIZE = "sanitize"


class ScoreRecord:
    """One finished typing run. Immutable; equal when all four fields match."""

    __slots__ = ("_name", "_wpm", "_mistakes", "_cpm")

    def __init__(self, name: str, wpm: int, mistakes: int, cpm: int):
        self._name = name
        self._wpm = wpm
        self._mistakes = mistakes
        self._cpm = cpm

    @property
    def name(self) -> str:
        return self._name

    @property
    def wpm(self) -> int:
        return self._wpm

    @property
    def mistakes(self) -> int:
        return self._mistakes

    @property
    def cpm(self) -> int:
        return self._cpm

    def as_tuple(self) -> tuple:
        return (self._name, self._wpm, self._mistakes, self._cpm)

    def __eq__(self, other):
        if not isinstance(other, ScoreRecord):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __hash__(self):
        return hash(self.as_tuple())

    def __repr__(self):
        return (
            f"ScoreRecord(name={self._name!r}, wpm={self._wpm}, "
            f"mistakes={self._mistakes}, cpm={self._cpm})"
        )

    def to_dict(self) -> dict:
        return {
            "name": self._name,
            "wpm": self._wpm,
            "mistakes": self._mistakes,
            "cpm": self._cpm,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoreRecord":
        """Rebuild from a persisted row. Raises KeyError/TypeError/ValueError on bad rows."""
        name = data["name"]
        if not isinstance(name, str) or not name:
            raise ValueError("name must be a non-empty string")
        values = []
        for field in ("wpm", "mistakes", "cpm"):
            value = data[field]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{field} must be a non-negative integer")
            values.append(value)
        return cls(name, *values)


class ScoreLimits:
    """Per-deployment bounds applied by validate_submission."""

    def __init__(
        self,
        name_max_length: int = 24,
        wpm_max: int = 2000,
        mistakes_max: int = 10000,
        cpm_max: int = 20000,
        name_policy: NamePolicy = NamePolicy.STRICT,
    ):
        self.name_max_length = name_max_length
        self.wpm_max = wpm_max
        self.mistakes_max = mistakes_max
        self.cpm_max = cpm_max
        self.name_policy = NamePolicy(name_policy)


def _coerce_count(field: str, raw, maximum: int) -> int:
    if raw is None:
        raise ValidationError(field, f"{field} is required")
    if isinstance(raw, bool):
        raise ValidationError(field, f"{field} must be a number")
    if isinstance(raw, str):
        try:
            raw = float(raw.strip())
        except ValueError:
            raise ValidationError(field, f"{field} must be a number")
    if not isinstance(raw, (int, float)):
        raise ValidationError(field, f"{field} must be a number")
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise ValidationError(field, f"{field} must be a finite number")
        if not raw.is_integer():
            raise ValidationError(field, f"{field} must be a whole number")
        raw = int(raw)
    if raw < 0:
        raise ValidationError(field, f"{field} must not be negative")
    if raw > maximum:
        raise ValidationError(field, f"{field} must be at most {maximum}")
    return raw


def _clean_name(raw, limits: ScoreLimits) -> str:
    if raw is None:
        raise ValidationError("name", "name is required")
    if not isinstance(raw, str):
        raise ValidationError("name", "name must be a string")
    name = raw.strip()

    if limits.name_policy is NamePolicy.SANITIZE:
        name = NAME_DISALLOWED_RE.sub("", name[: limits.name_max_length]).strip()
        if not name:
            raise ValidationError("name", "name is required")
        return name

    if not name:
        raise ValidationError("name", "name is required")
    if len(name) > limits.name_max_length:
        raise ValidationError(
            "name", f"name must be at most {limits.name_max_length} characters"
        )
    if not NAME_ALLOWED_RE.match(name):
        raise ValidationError(
            "name",
            "name may only contain letters, digits, spaces, '_', '-' and '.'",
        )
    return name


def validate_submission(candidate, limits: ScoreLimits | None = None) -> ScoreRecord:
    """
    Turn an untrusted client payload into a ScoreRecord.
    Every field is checked; the first failure rejects the whole record.
    """
    limits = limits or ScoreLimits()
    if not isinstance(candidate, dict):
        raise ValidationError("body", "Invalid payload")

    name = _clean_name(candidate.get("name"), limits)
    wpm = _coerce_count("wpm", candidate.get("wpm"), limits.wpm_max)
    mistakes = _coerce_count("mistakes", candidate.get("mistakes"), limits.mistakes_max)
    cpm = _coerce_count("cpm", candidate.get("cpm"), limits.cpm_max)
    return ScoreRecord(name, wpm, mistakes, cpm)
