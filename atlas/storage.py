"""Places where SBD messages are kept.

The heartbeat code only needs ``messages()`` and ``messages_from_imei()``;
``store()`` is there so tests and importers can fill a storage up."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List

from .constants import SBD_EXTENSION
from .errors import MessageFormatError, StoreError
from .message import RawMessage


class MemoryStorage:
    def __init__(self, messages=()):
        self._messages: List[RawMessage] = list(messages)

    def store(self, message: RawMessage):
        self._messages.append(message)

    def messages(self) -> List[RawMessage]:
        return list(self._messages)

    def messages_from_imei(self, imei: str) -> List[RawMessage]:
        return [m for m in self._messages if m.imei == imei]


class FilesystemStorage:
    """A directory tree of ``.sbd`` files laid out as ``<imei>/<YYYY>/<MM>/<YYMMDD_HHMMSS>.sbd``.

    Any file with the ``.sbd`` extension is read, wherever it sits in the tree,
    so hand-copied messages are picked up too."""
    def __init__(self, root):
        self.root = Path(root)
        if not self.root.is_dir():
            raise StoreError(f"storage root is not a directory: {self.root}")

    def store(self, message: RawMessage) -> Path:
        path = self.root / message.filename()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(message.to_bytes())
        except OSError as e:
            raise StoreError(f"could not write {path}: {e}") from e
        return path

    def messages(self) -> List[RawMessage]:
        return self._read_tree(self.root)

    def messages_from_imei(self, imei: str) -> List[RawMessage]:
        # Hand-copied files can sit outside <imei>/, so the whole tree is read.
        return [m for m in self._read_tree(self.root) if m.imei == imei]

    def _read_tree(self, top: Path) -> List[RawMessage]:
        messages = []
        for path in self._paths(top):
            try:
                messages.append(RawMessage.from_path(path))
            except (OSError, MessageFormatError) as e:
                raise StoreError(f"could not read message {path}: {e}") from e
        return messages

    def _paths(self, top: Path) -> List[Path]:
        found = []

        def onerror(e):
            raise StoreError(f"could not list {e.filename}: {e}") from e

        for dirpath, dirnames, filenames in os.walk(top, onerror=onerror):
            dirnames.sort()
            for name in sorted(filenames):
                if name.endswith(SBD_EXTENSION):
                    found.append(Path(dirpath) / name)
        return found
