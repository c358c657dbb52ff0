"""Iridium SBD mobile-originated messages.

The station talks to us through Iridium DirectIP. Each short burst data (SBD)
message is a small binary envelope: a protocol revision byte, an overall
length, and a series of information elements (IEs). We only care about the
header IE (who sent it, and when) and the payload IE (the heartbeat text).
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .constants import SBD_HEADER_IEI, SBD_PAYLOAD_IEI, SBD_PROTOCOL_REVISION
from .errors import EncodingError, MessageFormatError

_PREAMBLE = struct.Struct(">BH")
_IE_HEADER = struct.Struct(">BH")
_MO_HEADER = struct.Struct(">I15sBHHI")


@dataclass(frozen=True)
class RawMessage:
    """One SBD message as it came off the satellite network. Never mutated."""
    time_of_session: datetime
    imei: str
    payload: bytes
    momsn: int = 0
    mtmsn: int = 0
    cdr_reference: int = 0
    session_status: int = 0

    def payload_str(self) -> str:
        try:
            return self.payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(f"payload of message {self.momsn} from {self.imei} is not utf-8: {e}") from e

    def sort_key(self):
        """Arrival order: session time, then the modem's own sequence number."""
        return (self.time_of_session, self.momsn, self.cdr_reference)

    @classmethod
    def from_bytes(cls, data: bytes) -> "RawMessage":
        if len(data) < _PREAMBLE.size:
            raise MessageFormatError(f"message too short: {len(data)} bytes")
        revision, overall = _PREAMBLE.unpack_from(data, 0)
        if revision != SBD_PROTOCOL_REVISION:
            raise MessageFormatError(f"unsupported protocol revision: {revision}")
        end = _PREAMBLE.size + overall
        if len(data) < end:
            raise MessageFormatError(f"message truncated: expected {end} bytes, got {len(data)}")

        header = None
        payload = b""
        offset = _PREAMBLE.size
        while offset < end:
            if end - offset < _IE_HEADER.size:
                raise MessageFormatError(f"truncated information element at byte {offset}")
            iei, length = _IE_HEADER.unpack_from(data, offset)
            offset += _IE_HEADER.size
            body = data[offset:offset + length]
            if len(body) != length:
                raise MessageFormatError(f"information element 0x{iei:02x} truncated")
            offset += length
            if iei == SBD_HEADER_IEI:
                if length != _MO_HEADER.size:
                    raise MessageFormatError(f"bad header length: {length}")
                header = _MO_HEADER.unpack(body)
            elif iei == SBD_PAYLOAD_IEI:
                payload = bytes(body)
            # Location and anything newer are ignored.

        if header is None:
            raise MessageFormatError("message has no header information element")
        cdr_reference, imei, session_status, momsn, mtmsn, epoch = header
        try:
            imei = imei.decode("ascii")
        except UnicodeDecodeError as e:
            raise MessageFormatError(f"imei is not ascii: {imei!r}") from e
        return cls(
            time_of_session=datetime.fromtimestamp(epoch, tz=timezone.utc),
            imei=imei,
            payload=payload,
            momsn=momsn,
            mtmsn=mtmsn,
            cdr_reference=cdr_reference,
            session_status=session_status,
        )

    @classmethod
    def from_path(cls, path) -> "RawMessage":
        """Read a message from an ``.sbd`` file.

        Raises OSError if the file can't be read and MessageFormatError if it
        can be read but isn't an SBD message."""
        with open(path, "rb") as f:
            return cls.from_bytes(f.read())

    def to_bytes(self) -> bytes:
        header = _MO_HEADER.pack(
            self.cdr_reference,
            self.imei.encode("ascii"),
            self.session_status,
            self.momsn,
            self.mtmsn,
            int(self.time_of_session.timestamp()),
        )
        ies = (
            _IE_HEADER.pack(SBD_HEADER_IEI, len(header)) + header
            + _IE_HEADER.pack(SBD_PAYLOAD_IEI, len(self.payload)) + self.payload
        )
        return _PREAMBLE.pack(SBD_PROTOCOL_REVISION, len(ies)) + ies

    def filename(self) -> Path:
        """Where this message lives inside a filesystem storage root."""
        t = self.time_of_session
        return Path(self.imei) / f"{t:%Y}" / f"{t:%m}" / f"{t:%y%m%d_%H%M%S}.sbd"
