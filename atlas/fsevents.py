"""Change notifications for a directory of SBD messages.

``DirectoryWatch`` runs a watchdog observer over the tree and turns its events
into ``ChangeEvent``s on a queue, which is what ``Watcher.watch()`` consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

CREATED = "created"
MODIFIED = "modified"
REMOVED = "removed"
REPLACED = "replaced"

# watchdog event types we pass along; "opened" and "closed_no_write" are noise.
_KINDS = {
    "created": CREATED,
    "modified": MODIFIED,
    "closed": MODIFIED,
    "deleted": REMOVED,
}


@dataclass(frozen=True)
class ChangeEvent:
    path: Path
    kind: str


class _QueueHandler(FileSystemEventHandler):
    def __init__(self, root: Path, out_q):
        super().__init__()
        self.root = root
        self.out_q = out_q

    def _put(self, path, kind: str):
        path = Path(path)
        if path == self.root and kind != MODIFIED:
            # The directory itself was moved or deleted out from under us.
            kind = REPLACED
        self.out_q.put(ChangeEvent(path, kind))

    def on_any_event(self, event):
        if event.event_type == "moved":
            self._put(event.src_path, REMOVED)
            self._put(event.dest_path, CREATED)
            return
        kind = _KINDS.get(event.event_type)
        if kind is not None:
            self._put(event.src_path, kind)


class DirectoryWatch:
    """Recursive watch on ``root`` that feeds ``out_q``.

    Some platforms stop reporting once the watched directory is renamed or
    recreated; ``rearm()`` drops the watch and sets it up again on whatever is
    at ``root`` now. ``start()`` and ``rearm()`` raise OSError if the
    directory can't be watched."""
    def __init__(self, root, out_q, timeout_s: float = 1.0):
        self.root = Path(root)
        self.out_q = out_q
        self._handler = _QueueHandler(self.root, out_q)
        self._observer = Observer(timeout=timeout_s)
        self._observer.daemon = True

    def start(self):
        self._observer.schedule(self._handler, str(self.root), recursive=True)
        self._observer.start()

    def rearm(self):
        self._observer.unschedule_all()
        self._observer.schedule(self._handler, str(self.root), recursive=True)

    def stop(self, timeout_s: Optional[float] = 2.0):
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout=timeout_s)
