"""Values tagged with a safety level and the transitions between levels."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class SafetyLevel(enum.IntEnum):
    """How far a value has been checked: raw, validated or high."""

    RAW = 0
    VALIDATED = 1
    HIGH = 2


@dataclass(frozen=True)
class Typed(Generic[T]):
    """A value carrying the safety level it was established at."""

    value: T
    level: SafetyLevel

    def unwrap(self) -> T:
        """The plain value."""
        return self.value

    def into_high(self) -> "Typed[T]":
        """Promote a validated value to high level."""
        if self.level is not SafetyLevel.VALIDATED:
            raise TypeError(f"into_high requires a validated value, got {self.level.name}")
        return high(self.value)


def high(value: T) -> Typed[T]:
    """Wrap a value at high level."""
    return Typed(value, SafetyLevel.HIGH)


def raw(value: T) -> Typed[T]:
    """Wrap a value at raw level."""
    return Typed(value, SafetyLevel.RAW)


def validated(value: T) -> Typed[T]:
    """Wrap a value at validated level."""
    return Typed(value, SafetyLevel.VALIDATED)


def validate_raw(raw_value: Typed[T]) -> Typed[T]:
    """Promote a raw value to validated level."""
    if raw_value.level is not SafetyLevel.RAW:
        raise TypeError(f"validate_raw requires a raw value, got {raw_value.level.name}")
    return validated(raw_value.value)


def example_usage() -> Typed[int]:
    """Walk a value from raw through validated to high."""
    raw_val = raw(10)
    checked = validate_raw(raw_val)
    return checked.into_high()