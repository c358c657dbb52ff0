from __future__ import annotations


class AtlasError(Exception):
    """Base class for everything this package raises."""


class RejectedMessage(AtlasError):
    """A message does not belong to the builder it was offered to.

    This is protocol control flow, not a failure: the untouched message rides
    along in ``.message`` so the caller can route it somewhere else."""
    def __init__(self, message):
        super().__init__("rejected message")
        self.message = message


class ParseError(AtlasError):
    """A complete builder could not be turned into a heartbeat.

    ``location`` names the offending field (``field 11``) or row/column
    (``scan_detail[3]``) so a firmware regression can be tracked down."""
    def __init__(self, location: str, value, reason: str):
        super().__init__(f"{location}: {reason} ({value!r})")
        self.location = location
        self.value = value
        self.reason = reason


class UnknownSkipReason(ParseError):
    def __init__(self, code: str, description: str):
        super().__init__("scan_skip[1]", code, f"unknown skip reason code, description {description!r}")
        self.code = code
        self.description = description


class UnknownEfoyAction(ParseError):
    def __init__(self, location: str, word: str):
        super().__init__(location, word, "unknown efoy action")
        self.word = word


class StoreError(AtlasError):
    """The message store could not be read."""


class MessageFormatError(StoreError):
    """Bytes that should hold an Iridium SBD message don't."""


class EncodingError(StoreError):
    """A message payload is not valid UTF-8 text."""


class NotifyError(AtlasError):
    """The change notification channel died."""


class SutronError(AtlasError):
    """A Sutron data logger file could not be read."""
