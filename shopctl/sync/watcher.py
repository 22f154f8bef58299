"""Live sync of local theme files to a remote theme.

The watcher pushes the theme once, remembers the MD5 of every local file,
then uploads files whose content changes. Bursts of filesystem events are
coalesced with a short debounce. Deletions are not propagated.
"""

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..models import Theme
from .assets import THEME_DIRS, AssetSync
from .files import md5_file
from .report import SyncOptions, SyncReport

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.1


class LiveSyncWatcher(FileSystemEventHandler):
    """Uploads changed theme files as they are saved."""

    def __init__(
        self,
        assets: AssetSync,
        theme: Theme,
        options: SyncOptions,
        debounce: float = DEBOUNCE_SECONDS,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        super().__init__()
        self.assets = assets
        self.theme = theme
        self.options = replace(options, theme=str(theme.id), created_before=None)
        self.theme_dir = AssetSync.theme_dir(self.options).resolve()
        self.debounce = debounce
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None

        self._hashes: Dict[str, str] = {}
        self._pending: Set[Path] = set()
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    def index(self) -> Dict[str, str]:
        """Record the current MD5 of every managed local file."""
        hashes = {}
        for relative in self.assets.files.list_files(self.theme_dir, THEME_DIRS):
            digest = md5_file(self.theme_dir / relative)
            if digest:
                hashes[relative] = digest
        self._hashes = hashes
        return hashes

    def start(self) -> SyncReport:
        """Push the local theme, index it and begin watching.

        Returns:
            Report of the initial push
        """
        report = self.assets.push(self.options)
        self.index()

        self._observer = self._observer_factory()
        for watch_dir in THEME_DIRS:
            path = self.theme_dir / watch_dir
            if path.is_dir():
                logger.info("Watching for changes: theme/%s", watch_dir)
                self._observer.schedule(self, str(path), recursive=True)
        self._observer.start()
        return report

    def stop(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        for path in (event.src_path, getattr(event, "dest_path", "")):
            if path:
                logger.debug("%s: %s", event.event_type, path)
                self.queue(Path(path))

    def queue(self, path: Path) -> None:
        """Add a changed file and restart the debounce timer."""
        with self._lock:
            self._pending.add(Path(path))
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce, self.apply_changes)
            self._timer.daemon = True
            self._timer.start()

    def _relative(self, path: Path) -> Optional[str]:
        try:
            relative = path.resolve().relative_to(self.theme_dir).as_posix()
        except ValueError:
            return None
        if relative.split("/", 1)[0] not in THEME_DIRS:
            return None
        return relative

    def apply_changes(self) -> List[str]:
        """Upload the pending files whose content changed.

        Returns:
            Keys of the uploaded assets
        """
        with self._lock:
            pending = sorted(self._pending)
            self._pending.clear()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        uploaded = []
        for path in pending:
            relative = self._relative(path)
            if relative is None or self.assets.files.is_ignored(self.theme_dir, relative):
                continue

            digest = md5_file(path)
            if digest is None:
                # deleted or moved away
                continue
            if self._hashes.get(relative) == digest:
                continue

            logger.info("UPDATE: %s", relative)
            if self.options.dry_run:
                uploaded.append(relative)
                continue
            try:
                self.assets.upload(self.theme.id, self.theme_dir, relative)
            except Exception as e:
                logger.error("Failed to upload %s: %s", relative, e)
                continue
            self._hashes[relative] = digest
            uploaded.append(relative)
        return uploaded
