from __future__ import annotations

import json
import sys
import time


class JsonLogger:
    """Minimal structured logger.

    Emits one line per event (refreshes, watch restarts, errors) so logs are
    easy to grep and machine-parse."""
    def __init__(self, enable_json: bool, stream=None):
        """Create a logger.

        Args:
            enable_json: Emit JSON objects instead of ``[time] event k=v`` lines.
            stream: A file-like object for event output (defaults to stdout).
        """
        self.enable_json = enable_json
        self.stream = stream

    def emit(self, event: str, **fields):
        """Emit an event with a name and optional key/value fields."""
        t = time.time()
        ms = int((t - int(t)) * 1000)
        ts_iso = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(t)) + f'.{ms:03d}'
        if self.enable_json:
            payload = {"ts": t, "ts_iso": ts_iso, "event": event, **fields}
            line = json.dumps(payload, sort_keys=True, default=str)
        else:
            line = f"[{ts_iso}] {event}"
            if fields:
                line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        print(line, file=self.stream or sys.stdout, flush=True)
