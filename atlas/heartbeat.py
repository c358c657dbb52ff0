"""Heartbeats are status reports sent from the station over Iridium.

A heartbeat carries the last scan time, weather, and battery charge. Version
2 heartbeats also report scanner power-ons, skipped scans, and what the EFOY
fuel cells have been up to. Heartbeats may be split over several SBD
messages, see ``atlas.builder`` for how they are put back together.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .constants import EFOY_DATETIME_FORMAT, SCAN_INTERVAL_HOURS
from .errors import ParseError, RejectedMessage, UnknownEfoyAction, UnknownSkipReason
from .units import Celsius, Degree, Kilobyte, Meter, Millibar, OrionPercentage, Percentage, Volt


def parse_datetime(value: str, fmt: str, location: str) -> datetime:
    """Parse a station timestamp. The station clock runs on UTC."""
    try:
        return datetime.strptime(value.strip(), fmt).replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise ParseError(location, value, f"bad datetime: {e}") from e


@dataclass(frozen=True)
class ScannerOn:
    """A scanner power on."""
    datetime: datetime
    scanner_temperature: Celsius
    scanner_voltage: Volt
    # Available USB storage.
    memory_external: Kilobyte
    memory_internal: Kilobyte


@dataclass(frozen=True)
class ScanDetail:
    num_points: int
    minimum_range: Meter
    maximum_range: Meter
    file_size: Kilobyte
    minimum_amplitude: int
    maximum_amplitude: int
    # Roll and pitch come from the scanner's inclination sensors.
    roll: Degree
    pitch: Degree
    latitude: Degree
    longitude: Degree


@dataclass(frozen=True)
class Scan:
    """The last scan. Version 1 heartbeats only know when it started."""
    start: datetime
    end: Optional[datetime] = None
    detail: Optional[ScanDetail] = None


class SkipReason(enum.Enum):
    COULD_NOT_CONNECT_TO_HOUSING = "1"
    SCHEDULER_NOT_ENABLED = "2"
    SCANNER_ERROR = "3"
    TOO_MANY_RETRIES = "4"

    @classmethod
    def from_code(cls, code: str, description: str) -> "SkipReason":
        try:
            return cls(code.strip())
        except ValueError:
            raise UnknownSkipReason(code, description) from None


@dataclass(frozen=True)
class SkippedScan:
    datetime: datetime
    reason: SkipReason
    # Only scanner errors come with useful text.
    description: Optional[str] = None


class EfoyActionKind(enum.Enum):
    START = "start"
    FAILURE = "fail"
    SUCCESS = "success"


@dataclass(frozen=True)
class EfoyAction:
    """Something one of the EFOY fuel cells did."""
    kind: EfoyActionKind
    datetime: datetime

    @classmethod
    def parse(cls, timestamp: str, word: str, location: str) -> "EfoyAction":
        # The EFOY log has milliseconds on the end, which we drop.
        when = parse_datetime(timestamp.strip()[:19], EFOY_DATETIME_FORMAT, f"{location}[0]")
        try:
            kind = EfoyActionKind(word.strip())
        except ValueError:
            raise UnknownEfoyAction(f"{location}[1]", word) from None
        return cls(kind=kind, datetime=when)


@dataclass(frozen=True)
class Heartbeat:
    """Status report from the ATLAS system."""
    # Session time of the first constituent message.
    start_time: datetime
    # Probe on the southern tower.
    external_temperature: Celsius
    mount_temperature: Celsius
    pressure: Millibar
    humidity: Percentage
    soc1: OrionPercentage
    soc2: OrionPercentage
    last_scan: Scan
    last_scan_on: Optional[ScannerOn] = None
    last_scan_skip: Optional[SkippedScan] = None
    last_efoy1_action: Optional[EfoyAction] = None
    last_efoy2_action: Optional[EfoyAction] = None

    @classmethod
    def from_message(cls, message) -> "Heartbeat":
        """Creates a heartbeat from a single message.

        Raises RejectedMessage if the message doesn't hold a whole heartbeat;
        split heartbeats need a builder."""
        from .builder import create_builder

        builder = create_builder(message)
        if not builder.is_full():
            raise RejectedMessage(message)
        return builder.finalize()


def expected_next_scan_time(when: datetime) -> datetime:
    """Calculates the expected start time of the next scan.

    Scans run on a fixed six hour grid, so this is the next grid point."""
    hour = when.hour - when.hour % SCAN_INTERVAL_HOURS
    last = when.replace(hour=hour, minute=0, second=0, microsecond=0)
    return last + timedelta(hours=SCAN_INTERVAL_HOURS)
