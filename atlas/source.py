from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .builder import extract_heartbeats
from .heartbeat import Heartbeat
from .message import RawMessage


class Source:
    """Creates heartbeats from a message storage.

    Messages are grouped per modem (IMEI) before reassembly, since two
    stations' messages must never end up in the same heartbeat. An empty
    whitelist means every IMEI is used.

    A heartbeat that fails to parse fails the whole ``collect`` call."""
    def __init__(self, storage, imeis: Optional[Iterable[str]] = None):
        self.storage = storage
        self.imeis: List[str] = list(imeis or [])

    def whitelist(self, imei: str):
        self.imeis.append(imei)

    def messages_by_imei(self) -> Dict[str, List[RawMessage]]:
        groups: Dict[str, List[RawMessage]] = {}
        if self.imeis:
            for imei in self.imeis:
                groups[imei] = list(self.storage.messages_from_imei(imei))
        else:
            for message in self.storage.messages():
                groups.setdefault(message.imei, []).append(message)
        return groups

    def collect(self) -> List[Heartbeat]:
        """Returns every heartbeat in the storage, oldest first.

        Raises StoreError if the storage can't be read and ParseError if a
        complete heartbeat doesn't parse."""
        heartbeats: List[Heartbeat] = []
        for messages in self.messages_by_imei().values():
            messages.sort(key=RawMessage.sort_key)
            found, _leftovers = extract_heartbeats(messages)
            heartbeats.extend(found)
        heartbeats.sort(key=lambda h: h.start_time)
        return heartbeats
