from __future__ import annotations

from dataclasses import dataclass


@dataclass
class WatcherState:
    """Runtime status of a heartbeat watcher.

    Written by whichever thread refreshes, read by anyone who wants to show
    how fresh the heartbeats are."""
    directory: str = ""
    watching: bool = False

    refresh_count: int = 0
    refresh_failures: int = 0
    last_refresh_ts: float = 0.0
    last_refresh_duration_s: float = 0.0
    last_error: str = ""
    # Set while refreshes are failing, so we only alert once.
    alerted: bool = False

    heartbeat_count: int = 0
