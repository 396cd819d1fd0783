"""Directory scanning with cached classification and background scan tasks."""
from __future__ import annotations

import dataclasses
import logging
import os
import stat
import threading
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from core.classifier import EntryClassifier
from core.content_types import content_type_for, is_potential_media
from core.entry_cache import EntryCache
from core.file_item import Entry

logger = logging.getLogger(__name__)


class ScanError(Exception):
    """The directory itself could not be enumerated"""

    def __init__(self, directory: str, reason: str):
        super().__init__(f"Cannot read directory '{directory}': {reason}")
        self.directory = directory
        self.reason = reason


class ScanCancelled(Exception):
    """A scan was cancelled before it finished; nothing was cached"""


class DirectoryScanner:
    """Lists one directory's visible media entries, reusing cached classifications"""

    def __init__(self, cache: Optional[EntryCache] = None,
                 classifier: Optional[EntryClassifier] = None):
        self.cache = cache if cache is not None else EntryCache()
        self.classifier = classifier or EntryClassifier()
        self._commit_lock = threading.Lock()

    def scan(self, directory, cancel_event: Optional[threading.Event] = None) -> List[Entry]:
        """Return the directories and potential media in a directory, name-ascending

        Raises ScanError when the directory can't be listed and ScanCancelled
        when cancel_event is set before the results are committed.
        """
        directory = Path(directory)
        try:
            children = list(directory.iterdir())
        except OSError as e:
            raise ScanError(str(directory), e.strerror or str(e)) from e

        visible = []
        entries = []
        for child in children:
            if cancel_event is not None and cancel_event.is_set():
                raise ScanCancelled(str(directory))
            if child.name.startswith('.'):
                continue

            entry = self._entry_for(child, use_cache=True)
            if entry is None:
                continue
            visible.append(entry)
            if entry.is_directory or is_potential_media(entry.content_type):
                entries.append(entry)

        entries.sort(key=lambda e: e.name.casefold())

        with self._commit_lock:
            if cancel_event is not None and cancel_event.is_set():
                raise ScanCancelled(str(directory))
            # Every visible entry is cached, listed or not
            self.cache.commit_scan(visible)

        logger.debug("Scanned %s: %d entries", directory, len(entries))
        return entries

    def entry_for(self, path) -> Optional[Entry]:
        """Stat and classify a single path (None if it can't be read)"""
        return self._entry_for(Path(path), use_cache=False)

    def entry_after_move(self, entry: Entry, new_path) -> Optional[Entry]:
        """Entry for an item that now lives at new_path

        The old classification is carried over when size, modification time
        and content type still match; a move that changes the content type
        (a new extension) is classified again.
        """
        new_path = Path(new_path)
        try:
            st = new_path.stat()
            is_dir = stat.S_ISDIR(st.st_mode)
            content_type = content_type_for(new_path, is_dir)
        except OSError as e:
            logger.debug("Cannot stat moved entry %s: %s", new_path, e)
            return None

        size = 0 if is_dir else st.st_size
        if (is_dir == entry.is_directory and size == entry.size
                and st.st_mtime == entry.modified and content_type == entry.content_type):
            return dataclasses.replace(entry, path=str(new_path), name=new_path.name)
        return self.classifier.classify(str(new_path), is_dir, size, st.st_mtime, content_type)

    def _entry_for(self, path: Path, use_cache: bool) -> Optional[Entry]:
        try:
            st = path.stat()
            is_dir = stat.S_ISDIR(st.st_mode)
            if not os.access(path, os.R_OK):
                return None
            content_type = content_type_for(path, is_dir)
        except OSError as e:
            logger.debug("Skipping unreadable entry %s: %s", path, e)
            return None

        size = 0 if is_dir else st.st_size
        modified = st.st_mtime

        if use_cache:
            cached = self.cache.lookup(str(path), size, modified, content_type, is_dir)
            if cached is not None:
                return cached

        return self.classifier.classify(str(path), is_dir, size, modified, content_type)


class ScanTask(QObject):
    """One background scan, identified by the generation that requested it"""

    finished = pyqtSignal(int, str, object)  # generation, directory, entries
    failed = pyqtSignal(int, str, str)  # generation, directory, message

    def __init__(self, scanner: DirectoryScanner, directory: str, generation: int):
        super().__init__()
        self.scanner = scanner
        self.directory = directory
        self.generation = generation
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def cancel(self):
        self._cancel.set()

    def is_cancelled(self) -> bool:
        return self._cancel.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker exits; True if it did within the timeout"""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self):
        try:
            entries = self.scanner.scan(self.directory, self._cancel)
        except ScanCancelled:
            logger.debug("Scan of %s cancelled", self.directory)
            return
        except ScanError as e:
            self.failed.emit(self.generation, self.directory, e.reason)
            return
        except Exception as e:  # noqa: BLE001
            logger.exception("Unexpected error scanning %s", self.directory)
            self.failed.emit(self.generation, self.directory, str(e))
            return
        self.finished.emit(self.generation, self.directory, entries)
