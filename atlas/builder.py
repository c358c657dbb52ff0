"""Reassembly of heartbeats from SBD messages.

A heartbeat can be longer than one SBD message, and nothing outside the
payload tells us where one heartbeat stops and the next begins. A builder
collects the messages for one heartbeat and knows, from their content, when it
has enough to make one.

There are two wire formats:

* Version 1 (2015): the payload starts with ``0,`` and the heartbeat is
  exactly 49 comma separated fields, split wherever the modem felt like it.
* Version 2 (2016 on): the first message starts with ``1,<id>,<seq>,<bytes>:``
  and every following message with ``1,<id>,<seq>:``. A heartbeat that fits in
  one message is sent as ``0ATHB02nnn\\r...`` with no length at all.

``create_builder`` tries version 2 first, then version 1. Builders refuse
messages that aren't theirs by raising ``RejectedMessage``, which carries the
message back to the caller untouched.

Example::

    builders, leftovers = extract_builders(messages)
    heartbeats = [b.finalize() for b in builders]
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from .constants import (
    DATETIME_FORMAT,
    V1_HEADER,
    V1_NUM_FIELDS,
    V1_SCAN_START_FIELD,
    V2_HEADER,
    V2_SECONDARY_HEADER,
)
from .errors import EncodingError, ParseError, RejectedMessage
from .heartbeat import (
    EfoyAction,
    Heartbeat,
    Scan,
    ScanDetail,
    ScannerOn,
    SkippedScan,
    SkipReason,
    parse_datetime,
)
from .message import RawMessage
from .units import Celsius, Degree, Kilobyte, Meter, Millibar, OrionPercentage, Percentage, Volt

_V2_HEADER_RE = re.compile(V2_HEADER)
_V2_SECONDARY_HEADER_RE = re.compile(V2_SECONDARY_HEADER)
_DECIMAL_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)")
_COUNT_RE = re.compile(r"\d+")


def _text(message: RawMessage) -> str:
    # A payload that isn't text can't be part of a heartbeat.
    try:
        return message.payload_str()
    except EncodingError:
        raise RejectedMessage(message) from None


def _number(kind, value: str, location: str):
    # Plain decimals only. The station never sends nan, exponents, or negative counts.
    pattern = _COUNT_RE if kind is int else _DECIMAL_RE
    if pattern.fullmatch(value) is None:
        raise ParseError(location, value, f"not a valid {kind.__name__}")
    return kind(value)


class FormatOneBuilder:
    """Version 1 heartbeats: 49 comma separated fields and a ``0,`` in front."""

    def __init__(self, message: RawMessage):
        self.messages: List[RawMessage] = [message]

    @classmethod
    def create(cls, message: RawMessage) -> "FormatOneBuilder":
        if not _text(message).startswith(V1_HEADER):
            raise RejectedMessage(message)
        return cls(message)

    def payload(self) -> str:
        return "".join(m.payload_str() for m in self.messages)

    def field_count(self) -> int:
        return self.payload().count(",") + 1

    def push(self, message: RawMessage):
        _text(message)
        self.messages.append(message)
        if self.field_count() > V1_NUM_FIELDS:
            self.messages.pop()
            raise RejectedMessage(message)

    def is_full(self) -> bool:
        """True once we have all 49 fields.

        The last field may still have been cut in half by a message split, so a
        full version 1 builder can still accept a message without commas."""
        return self.field_count() == V1_NUM_FIELDS

    def finalize(self) -> Heartbeat:
        fields = self.payload().split(",")
        if len(fields) != V1_NUM_FIELDS:
            raise ParseError("fields", len(fields), f"expected {V1_NUM_FIELDS} fields")

        def number(index: int) -> float:
            return _number(float, fields[index], f"field {index}")

        # Months are zero-based in version 1, e.g. July comes through as 06.
        raw = fields[V1_SCAN_START_FIELD].strip()
        location = f"field {V1_SCAN_START_FIELD}"
        month, sep, rest = raw.partition("/")
        if not sep:
            raise ParseError(location, raw, "bad datetime: no month")
        month = _number(int, month, location) + 1
        scan_start = parse_datetime(f"{month:02}/{rest}", DATETIME_FORMAT, location)

        return Heartbeat(
            start_time=self.messages[0].time_of_session,
            external_temperature=Celsius(number(1)),
            pressure=Millibar(number(2)),
            humidity=Percentage(number(3)),
            mount_temperature=Celsius(number(26)),
            soc1=OrionPercentage(number(37)),
            soc2=OrionPercentage(number(40)),
            last_scan=Scan(start=scan_start),
        )


@dataclass(frozen=True)
class Header:
    id: int
    bytes: int


class _Rows:
    """Walks the lines of a version 2 body, one named comma separated row at a time."""

    def __init__(self, body: str):
        # Lines end in \r\n. The first line is the ATHB02 tag.
        lines = body.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        self._lines = [line[:-1] if line.endswith("\r") else line for line in lines]
        self._index = 1

    def next(self, name: str, columns: int) -> List[str]:
        if self._index >= len(self._lines):
            raise ParseError(name, None, "heartbeat ran out of lines")
        row = self._lines[self._index].split(",")
        self._index += 1
        if len(row) < columns:
            raise ParseError(name, ",".join(row), f"expected {columns} columns, got {len(row)}")
        return row

    def finish(self, name: str):
        extra = [line for line in self._lines[self._index:] if line]
        if extra:
            raise ParseError(name, extra[0], f"unexpected trailing lines: {len(extra)}")


class FormatTwoBuilder:
    """Version 2 heartbeats, framed with an id and a byte count."""

    def __init__(self, message: RawMessage, header: Optional[Header]):
        self.header = header
        self.messages: List[RawMessage] = [message]

    @classmethod
    def create(cls, message: RawMessage) -> "FormatTwoBuilder":
        match = _V2_HEADER_RE.match(_text(message))
        if match is None:
            raise RejectedMessage(message)
        header = None
        if match.group("id") is not None:
            header = Header(id=int(match.group("id")), bytes=int(match.group("bytes")))
        return cls(message, header)

    def body(self) -> str:
        parts = []
        for m in self.messages:
            payload = m.payload_str()
            if self.header is None:
                # Single message heartbeats just have a zero up front.
                parts.append(payload[1:])
            else:
                parts.append(payload[payload.index(":") + 1:])
        return "".join(parts)

    def push(self, message: RawMessage):
        if self.is_full():
            raise RejectedMessage(message)
        match = _V2_SECONDARY_HEADER_RE.match(_text(message))
        # Non-full builders always have a header.
        if match is None or int(match.group("id")) != self.header.id:
            raise RejectedMessage(message)
        self.messages.append(message)

    def is_full(self) -> bool:
        if self.header is None:
            return True
        return len(self.body().encode("utf-8")) == self.header.bytes

    def finalize(self) -> Heartbeat:
        rows = _Rows(self.body())

        row = rows.next("scanner_on", 5)
        scan_on = ScannerOn(
            datetime=parse_datetime(row[0], DATETIME_FORMAT, "scanner_on[0]"),
            scanner_voltage=Volt(_number(float, row[1], "scanner_on[1]")),
            scanner_temperature=Celsius(_number(float, row[2], "scanner_on[2]")),
            memory_external=Kilobyte(_number(float, row[3], "scanner_on[3]")),
            memory_internal=Kilobyte(_number(float, row[4], "scanner_on[4]")),
        )

        row = rows.next("weather", 3)
        external_temperature = Celsius(_number(float, row[0], "weather[0]"))
        pressure = Millibar(_number(float, row[1], "weather[1]"))
        humidity = Percentage(_number(float, row[2], "weather[2]"))

        row = rows.next("scan_start", 1)
        scan_start = parse_datetime(row[0], DATETIME_FORMAT, "scan_start[0]")

        row = rows.next("scan_detail", 11)
        detail = ScanDetail(
            num_points=_number(int, row[1], "scan_detail[1]"),
            minimum_range=Meter(_number(float, row[2], "scan_detail[2]")),
            maximum_range=Meter(_number(float, row[3], "scan_detail[3]")),
            file_size=Kilobyte(_number(float, row[4], "scan_detail[4]")),
            minimum_amplitude=_number(int, row[5], "scan_detail[5]"),
            maximum_amplitude=_number(int, row[6], "scan_detail[6]"),
            roll=Degree(_number(float, row[7], "scan_detail[7]")),
            pitch=Degree(_number(float, row[8], "scan_detail[8]")),
            latitude=Degree(_number(float, row[9], "scan_detail[9]")),
            longitude=Degree(_number(float, row[10], "scan_detail[10]")),
        )
        scan = Scan(
            start=scan_start,
            end=parse_datetime(row[0], DATETIME_FORMAT, "scan_detail[0]"),
            detail=detail,
        )

        row = rows.next("scan_skip", 3)
        reason = SkipReason.from_code(row[1], row[2])
        scan_skip = SkippedScan(
            datetime=parse_datetime(row[0], DATETIME_FORMAT, "scan_skip[0]"),
            reason=reason,
            description=row[2] if reason is SkipReason.SCANNER_ERROR else None,
        )

        # Each EFOY reports its last two actions; we only keep the newest.
        row = rows.next("efoy1", 2)
        efoy1 = EfoyAction.parse(row[0], row[1], "efoy1")
        rows.next("efoy1_previous", 1)

        row = rows.next("efoy2", 2)
        efoy2 = EfoyAction.parse(row[0], row[1], "efoy2")
        rows.next("efoy2_previous", 1)

        row = rows.next("power", 3)
        rows.finish("power")
        return Heartbeat(
            start_time=self.messages[0].time_of_session,
            external_temperature=external_temperature,
            mount_temperature=Celsius(_number(float, row[0], "power[0]")),
            pressure=pressure,
            humidity=humidity,
            soc1=OrionPercentage(_number(float, row[1], "power[1]")),
            soc2=OrionPercentage(_number(float, row[2], "power[2]")),
            last_scan=scan,
            last_scan_on=scan_on,
            last_scan_skip=scan_skip,
            last_efoy1_action=efoy1,
            last_efoy2_action=efoy2,
        )


Builder = Union[FormatOneBuilder, FormatTwoBuilder]


def create_builder(message: RawMessage) -> Builder:
    """Starts a new builder with this message.

    Raises RejectedMessage, holding the same message, if the message can't
    start a heartbeat (e.g. it's the second half of one)."""
    try:
        return FormatTwoBuilder.create(message)
    except RejectedMessage:
        return FormatOneBuilder.create(message)


def extract_builders(messages: Iterable[RawMessage]) -> Tuple[List[Builder], List[RawMessage]]:
    """Sorts messages into full builders and leftovers.

    Messages are processed in the order given, so sort them first. Leftovers
    keep their relative order and can be fed back in later, once the rest of
    their heartbeat has shown up."""
    builders: List[Builder] = []
    leftovers: List[RawMessage] = []
    current: Optional[Builder] = None

    def retire(builder: Builder):
        if builder.is_full():
            builders.append(builder)
        else:
            leftovers.extend(builder.messages)

    for message in messages:
        try:
            builder = create_builder(message)
        except RejectedMessage:
            pass
        else:
            if current is not None:
                retire(current)
            current = builder
            continue

        if current is None:
            leftovers.append(message)
            continue
        try:
            current.push(message)
        except RejectedMessage:
            retire(current)
            current = None
            leftovers.append(message)

    if current is not None:
        retire(current)
    return builders, leftovers


def extract_heartbeats(messages: Iterable[RawMessage]) -> Tuple[List[Heartbeat], List[RawMessage]]:
    """Like ``extract_builders``, but finalizes every builder.

    The first builder that fails to finalize raises its ParseError. Use
    ``extract_builders`` directly to handle failures one heartbeat at a time."""
    builders, leftovers = extract_builders(messages)
    return [b.finalize() for b in builders], leftovers
