"""atlas: heartbeat reassembly for the ATLAS remote monitoring station."""

from .constants import VERSION as __version__
from .builder import create_builder, extract_builders, extract_heartbeats
from .heartbeat import Heartbeat, expected_next_scan_time
from .message import RawMessage
from .source import Source
from .watcher import HeartbeatCollection, Watcher

__all__ = [
    "__version__",
    "Heartbeat",
    "HeartbeatCollection",
    "RawMessage",
    "Source",
    "Watcher",
    "create_builder",
    "expected_next_scan_time",
    "extract_builders",
    "extract_heartbeats",
]
