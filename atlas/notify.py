from __future__ import annotations

import threading
from typing import Optional

import requests

PUSHOVER_URL = "https://api.pushover.net/1/messages.json"


class Notifier:
    """Pushover alerts for when the ATLAS heartbeat feed breaks.

    Sends happen on a daemon thread. A failed send is logged as
    ``notify_error`` and dropped."""
    def __init__(
        self,
        enabled: bool,
        pushover_token: Optional[str],
        pushover_user: Optional[str],
        logger=None,
        timeout_s: float = 5.0,
    ):
        self.enabled = enabled and bool(pushover_token and pushover_user)
        self.logger = logger
        self._token = pushover_token
        self._user = pushover_user
        self._timeout = timeout_s

    def refresh_failing(self, directory, err: Exception):
        """Heartbeats in ``directory`` stopped refreshing."""
        self.send(
            title="ATLAS heartbeats not refreshing",
            message=f"Refresh of {directory} failed: {err}",
            priority=1,
        )

    def send(self, title: str, message: str, priority: int = 0):
        if not self.enabled:
            return
        threading.Thread(target=self._send_sync, args=(title, message, priority), daemon=True).start()

    def _send_sync(self, title: str, message: str, priority: int):
        try:
            response = requests.post(
                PUSHOVER_URL,
                data={
                    "token": self._token,
                    "user": self._user,
                    "title": title,
                    "message": message,
                    "priority": priority,
                },
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            if self.logger is not None:
                self.logger.emit("notify_error", title=title, error=str(e))
