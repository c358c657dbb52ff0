"""Keep a list of heartbeats up to date as messages land in a directory.

The watcher owns a ``HeartbeatCollection`` that any number of threads can
read. ``watch()`` blocks, waiting for changes under the directory, and
rebuilds the whole collection every time a message file shows up::

    watcher = Watcher("data")
    heartbeats = watcher.heartbeats()
    watcher.start()                   # runs watch() on a daemon thread
    latest = heartbeats.latest()      # from any thread
    watcher.stop()
"""

from __future__ import annotations

import queue
import threading
from pathlib import Path
from typing import Iterable, Optional, Tuple

from .constants import VERSION
from .errors import AtlasError, MessageFormatError, NotifyError
from .fsevents import MODIFIED, DirectoryWatch
from .heartbeat import Heartbeat
from .logging import JsonLogger
from .message import RawMessage
from .notify import Notifier
from .source import Source
from .state import WatcherState
from .storage import FilesystemStorage
from .util import now_s


class HeartbeatCollection:
    """Thread-safe, time-sorted heartbeats.

    Readers get immutable snapshots; a refresh swaps the whole snapshot at
    once, so nobody ever sees half of a rebuild."""
    def __init__(self, heartbeats: Iterable[Heartbeat] = ()):
        self._lock = threading.Lock()
        self._heartbeats: Tuple[Heartbeat, ...] = tuple(heartbeats)

    def snapshot(self) -> Tuple[Heartbeat, ...]:
        with self._lock:
            return self._heartbeats

    def replace(self, heartbeats: Iterable[Heartbeat]):
        new = tuple(heartbeats)
        with self._lock:
            self._heartbeats = new

    def latest(self) -> Optional[Heartbeat]:
        """The newest heartbeat, or None if there's no data yet."""
        heartbeats = self.snapshot()
        return heartbeats[-1] if heartbeats else None

    def __len__(self):
        return len(self.snapshot())

    def __iter__(self):
        return iter(self.snapshot())


def is_message_path(path) -> bool:
    """True if the file at ``path`` is a readable SBD message."""
    try:
        RawMessage.from_path(path)
    except (OSError, MessageFormatError):
        return False
    return True


class Watcher:
    """Refreshes a heartbeat collection whenever a directory of SBD messages changes.

    Only one thread should call ``refresh()`` at a time; the watch loop is
    that thread once it's running. Construction does the first refresh, so a
    missing directory or a broken heartbeat fails right away."""
    def __init__(
        self,
        directory,
        imeis: Iterable[str] = (),
        logger: Optional[JsonLogger] = None,
        notifier: Optional[Notifier] = None,
        poll_interval_s: float = 1.0,
    ):
        self.directory = Path(directory)
        self.imeis = list(imeis)
        self.logger = logger or JsonLogger(enable_json=False)
        self.notifier = notifier
        self.poll_interval_s = float(poll_interval_s)
        self.state = WatcherState(directory=str(self.directory))

        self._heartbeats = HeartbeatCollection()
        self._stop_evt = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._refresh()

    @classmethod
    def from_settings(cls, settings) -> "Watcher":
        logger = JsonLogger(enable_json=settings.json_logs)
        notifier = Notifier(
            enabled=settings.notify_enabled,
            pushover_token=settings.pushover_token,
            pushover_user=settings.pushover_user,
            logger=logger,
        )
        return cls(
            settings.directory,
            imeis=settings.imeis,
            logger=logger,
            notifier=notifier,
            poll_interval_s=settings.poll_interval_s,
        )

    def heartbeats(self) -> HeartbeatCollection:
        """The shared collection. Hold on to it; it's refreshed in place."""
        return self._heartbeats

    def refresh(self):
        """Re-read every message and replace the heartbeats.

        Raises StoreError or ParseError, in which case the previous heartbeats
        stay in place."""
        try:
            self._refresh()
        except (AtlasError, OSError) as e:
            self.state.refresh_failures += 1
            self.state.last_error = str(e)
            raise
        if self.state.alerted:
            self.state.alerted = False
            self.logger.emit("refresh_recovered", directory=str(self.directory))

    def _refresh(self):
        t0 = now_s()
        source = Source(FilesystemStorage(self.directory), self.imeis)
        heartbeats = source.collect()
        self._heartbeats.replace(heartbeats)
        dt = now_s() - t0
        self.state.refresh_count += 1
        self.state.last_refresh_ts = now_s()
        self.state.last_refresh_duration_s = dt
        self.state.last_error = ""
        self.state.heartbeat_count = len(heartbeats)
        self.logger.emit("refresh", directory=str(self.directory), heartbeats=len(heartbeats), dt=round(dt, 3))

    def start(self):
        """Run ``watch()`` on a daemon thread."""
        self._stop_evt.clear()
        t = threading.Thread(target=self._run, daemon=True)
        t.start()
        self._thread = t

    def stop(self, timeout_s: Optional[float] = 2.0):
        """Ask the watch loop to finish and wait for it."""
        self._stop_evt.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout_s)
            self._thread = None

    def _run(self):
        try:
            self.watch()
        except NotifyError as e:
            self.logger.emit("watch_error", directory=str(self.directory), error=str(e))

    def watch(self, events: Optional[queue.Queue] = None):
        """Block, refreshing on every message file change, until ``stop()``.

        ``events`` is a queue of ChangeEvents from some other notifier; without
        one a DirectoryWatch is started. Refresh failures are logged and the
        loop carries on. Raises NotifyError if the notifier dies."""
        dirwatch = None
        if events is None:
            events = queue.Queue()
            dirwatch = DirectoryWatch(self.directory, events, timeout_s=self.poll_interval_s)
            try:
                dirwatch.start()
            except OSError as e:
                raise NotifyError(f"could not watch {self.directory}: {e}") from e
        self.state.watching = True
        self.logger.emit("watch_started", directory=str(self.directory), version=VERSION)
        try:
            while not self._stop_evt.is_set():
                try:
                    event = events.get(timeout=0.2)
                except queue.Empty:
                    continue
                if isinstance(event, BaseException):
                    raise NotifyError(f"change notifications for {self.directory} stopped: {event}") from event
                self._handle_event(event, dirwatch)
        finally:
            if dirwatch is not None:
                dirwatch.stop()
            self.state.watching = False
            self.logger.emit("watch_stopped", directory=str(self.directory))

    def _handle_event(self, event, dirwatch: Optional[DirectoryWatch]):
        path = Path(event.path)
        is_root = path == self.directory or path.resolve() == self.directory.resolve()
        if is_root and event.kind == MODIFIED:
            # A child changed; its own event follows.
            return
        if is_root:
            # Some platforms stop reporting after the directory is renamed.
            if dirwatch is not None:
                try:
                    dirwatch.rearm()
                except OSError as e:
                    raise NotifyError(f"could not re-watch {self.directory}: {e}") from e
            self.logger.emit("watch_rearmed", directory=str(self.directory), kind=event.kind)
            # Anything that landed while the watch was down went unreported.
        elif not is_message_path(path):
            return
        try:
            self.refresh()
        except (AtlasError, OSError) as e:
            self.logger.emit("refresh_error", directory=str(self.directory), path=str(path), error=str(e))
            self._alert(e)

    def _alert(self, err: Exception):
        if self.state.alerted:
            return
        self.state.alerted = True
        if self.notifier is not None:
            self.notifier.refresh_failing(self.directory, err)
