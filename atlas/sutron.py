"""Sutron log files come off of the station's data logger.

These are not sent over the satellite link; they're collected by hand on
site visits. The first line is ``Station Name``, the second the station name,
then one ``MM/DD/YYYY,HH:MM:SS,<data>`` record per line.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from .constants import SUTRON_DATETIME_FORMAT
from .errors import ParseError, SutronError
from .heartbeat import parse_datetime

LOG_HEADER = "Station Name"


@dataclass(frozen=True)
class Record:
    datetime: datetime
    data: str

    @classmethod
    def parse(cls, line: str) -> "Record":
        line = line.rstrip("\r\n")
        if len(line) < 20:
            raise SutronError(f"record is too short: {len(line)}")
        if line[19] != ",":
            raise SutronError(f"record is missing a comma: {line[19]!r}")
        try:
            when = parse_datetime(line[:19], SUTRON_DATETIME_FORMAT, "record")
        except ParseError as e:
            raise SutronError(str(e)) from e
        return cls(datetime=when, data=line[20:])


@dataclass(frozen=True)
class Log:
    station_name: str
    records: List[Record]

    @classmethod
    def from_path(cls, path) -> "Log":
        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise SutronError(f"could not read {path}: {e}") from e
        if len(lines) < 2:
            raise SutronError("log is too short")
        if lines[0] != LOG_HEADER:
            raise SutronError(f"bad log header: {lines[0]!r}")
        return cls(station_name=lines[1], records=[Record.parse(line) for line in lines[2:]])
