"""Light wrappers around floats so physical quantities don't get mixed up."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Celsius:
    value: float

    def __str__(self):
        return f"{self.value} °C"


@dataclass(frozen=True)
class Millibar:
    value: float

    def __str__(self):
        return f"{self.value} mbar"


@dataclass(frozen=True)
class Percentage:
    """A percentage, usually between zero and one hundred."""
    value: float

    def __str__(self):
        return f"{self.value}%"


@dataclass(frozen=True)
class OrionPercentage:
    """A percentage reported as a logic level voltage between zero and five."""
    value: float

    def __str__(self):
        return f"{self.value} / 5"


@dataclass(frozen=True)
class Volt:
    value: float

    def __str__(self):
        return f"{self.value} V"


@dataclass(frozen=True)
class Kilobyte:
    value: float

    def __str__(self):
        return f"{self.value} KB"


@dataclass(frozen=True)
class Meter:
    value: float

    def __str__(self):
        return f"{self.value} m"


@dataclass(frozen=True)
class Degree:
    value: float

    def __str__(self):
        return f"{self.value}°"
