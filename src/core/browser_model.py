"""
Browser model - owns the browsing state and turns user intent into scans,
navigation and file operations.

All state changes happen on the thread that owns the model. Scans run on
worker threads and report back through queued signals; a result is only
accepted if it belongs to the most recent scan request for the directory
that is still current.
"""
from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QObject, QCoreApplication, pyqtSignal

from core.directory_scanner import DirectoryScanner, ScanError, ScanTask
from core.file_item import Entry
from core.file_operations import FileOperations
from core.sort_filter import (SortCriterion, MediaMetric, apply_view, media_metrics,
                              folder_count, adjacent_media)
from core.volume_manager import VolumeManager, Volume, PathComponent, canonical_path

logger = logging.getLogger(__name__)


@dataclass
class BrowserState:
    """Everything the presentation layer renders"""

    current_directory: str
    all_items: List[Entry] = field(default_factory=list)  # as scanned
    items: List[Entry] = field(default_factory=list)  # sorted and filtered
    selected: Optional[Entry] = None
    sort_by: SortCriterion = SortCriterion.NAME
    sort_ascending: bool = True
    search_text: str = ''
    is_renaming: bool = False
    rename_text: str = ''
    breadcrumb: List[PathComponent] = field(default_factory=list)
    volumes: List[Volume] = field(default_factory=list)
    scan_error: Optional[str] = None
    is_loading: bool = False


class BrowserModel(QObject):
    """Navigation and mutation controller for one browser instance"""

    directory_changed = pyqtSignal(str)
    items_changed = pyqtSignal()
    selection_changed = pyqtSignal(object)  # Entry or None
    rename_state_changed = pyqtSignal(bool)
    breadcrumb_changed = pyqtSignal()
    volumes_changed = pyqtSignal()
    loading_changed = pyqtSignal(bool)
    scan_failed = pyqtSignal(str, str)  # directory, message
    navigation_rejected = pyqtSignal(str, str)  # target path, reason
    operation_failed = pyqtSignal(str, str)  # operation, message

    def __init__(self, initial_directory=None, home=None,
                 scanner: Optional[DirectoryScanner] = None,
                 volume_manager: Optional[VolumeManager] = None,
                 settings=None, run_in_background: bool = True, parent=None):
        super().__init__(parent)
        self.home = canonical_path(home or Path.home())
        self.scanner = scanner or DirectoryScanner()
        self.volume_manager = volume_manager or self._default_volume_manager(settings)
        self.settings = settings
        self.run_in_background = run_in_background

        self._generation = 0
        self._scan_task: Optional[ScanTask] = None

        start = initial_directory or self._default_directory()
        self.state = BrowserState(current_directory=canonical_path(start))
        if settings is not None:
            self.state.sort_by = SortCriterion.from_value(settings.get('sort_by'))
            self.state.sort_ascending = bool(settings.get('sort_ascending', True))
        self.state.breadcrumb = self.volume_manager.breadcrumb(self.state.current_directory)

    def _default_volume_manager(self, settings) -> VolumeManager:
        """Volume manager for home, trying a configured cloud-sync folder first"""
        cloud_roots = VolumeManager.default_cloud_roots(self.home)
        configured = settings.get('cloud_sync_root') if settings is not None else None
        if configured:
            configured = os.path.expanduser(configured)
            name = os.path.basename(configured.rstrip(os.sep)) or 'Cloud Drive'
            cloud_roots.insert(0, (name, configured))
        return VolumeManager(home=self.home, cloud_roots=cloud_roots)

    def _default_directory(self) -> str:
        candidates = []
        if self.settings is not None and self.settings.get('last_directory'):
            candidates.append(self.settings.get('last_directory'))
        home = Path(self.home)
        candidates.extend([home / 'Documents', home / 'Desktop', home])
        for candidate in candidates:
            if os.path.isdir(candidate):
                return str(candidate)
        return str(home)

    # -------- Read access -------- #
    @property
    def current_directory(self) -> str:
        return self.state.current_directory

    @property
    def items(self) -> List[Entry]:
        return self.state.items

    @property
    def selected(self) -> Optional[Entry]:
        return self.state.selected

    @property
    def can_navigate_up(self) -> bool:
        current = self.state.current_directory
        parent = os.path.dirname(current)
        return parent != current and len(parent) >= len(self.home)

    @property
    def metrics(self) -> List[MediaMetric]:
        return media_metrics(self.state.items)

    @property
    def folder_count(self) -> int:
        return folder_count(self.state.items)

    @property
    def is_scanning(self) -> bool:
        return self._scan_task is not None

    # -------- Scanning -------- #
    def load_initial_directory(self):
        self.refresh()

    def refresh(self):
        """Rescan the current directory, superseding any scan in flight"""
        self._generation += 1
        generation = self._generation
        directory = self.state.current_directory

        if self._scan_task is not None:
            self._scan_task.cancel()
            self._scan_task = None
        self._set_loading(True)

        if not self.run_in_background:
            try:
                entries = self.scanner.scan(directory)
            except ScanError as e:
                self._on_scan_failed(generation, directory, e.reason)
                return
            self._on_scan_finished(generation, directory, entries)
            return

        task = ScanTask(self.scanner, directory, generation)
        task.finished.connect(self._on_scan_finished)
        task.failed.connect(self._on_scan_failed)
        self._scan_task = task
        task.start()

    def wait_for_scan(self, timeout: Optional[float] = None) -> bool:
        """Block until the scan in flight finishes and deliver its result"""
        task = self._scan_task
        if task is None:
            return True
        finished = task.wait(timeout)
        QCoreApplication.processEvents()
        return finished

    def _is_current(self, generation: int, directory: str) -> bool:
        return generation == self._generation and directory == self.state.current_directory

    def _on_scan_finished(self, generation: int, directory: str, entries):
        if not self._is_current(generation, directory):
            logger.debug("Discarding stale scan of %s", directory)
            return
        self._scan_task = None
        self.state.scan_error = None
        self.state.all_items = list(entries)

        selected = self.state.selected
        if selected is not None:
            fresh = next((e for e in entries if e.path == selected.path), None)
            if fresh is not selected:
                self.state.selected = fresh
                self.selection_changed.emit(fresh)

        logger.info("Loaded %d items from %s", len(entries), directory)
        self._rebuild_view()
        self._set_loading(False)

    def _on_scan_failed(self, generation: int, directory: str, message: str):
        if not self._is_current(generation, directory):
            logger.debug("Discarding stale scan failure for %s", directory)
            return
        self._scan_task = None
        logger.warning("Error loading directory %s: %s", directory, message)
        self.state.scan_error = message
        self.state.all_items = []
        self._rebuild_view()
        self._set_loading(False)
        self.scan_failed.emit(directory, message)

    def _set_loading(self, loading: bool):
        if self.state.is_loading != loading:
            self.state.is_loading = loading
            self.loading_changed.emit(loading)

    def _rebuild_view(self):
        self.state.items = apply_view(self.state.all_items, self.state.sort_by,
                                      self.state.sort_ascending, self.state.search_text)
        self.items_changed.emit()

    # -------- Navigation -------- #
    def navigate_into(self, entry: Entry) -> bool:
        if not entry.is_directory:
            self._reject(entry.path, "Not a directory")
            return False
        # The listing may be stale; check the directory as it is now
        if not FileOperations.is_readable_directory(entry.path):
            self._reject(entry.path, "Directory doesn't exist or isn't accessible")
            return False
        self._change_directory(entry.path)
        return True

    def navigate_to(self, path) -> bool:
        """Navigate to a user-supplied directory path"""
        if not FileOperations.is_readable_directory(path):
            self._reject(str(path), "Directory doesn't exist or isn't accessible")
            return False
        self._change_directory(path)
        return True

    def navigate_up(self) -> bool:
        current = self.state.current_directory
        parent = os.path.dirname(current)

        # Don't go above the home directory (coarse length check on canonical paths)
        if parent == current or len(parent) < len(self.home):
            self._reject(parent, "Cannot navigate above the home directory")
            return False
        self._change_directory(parent)
        return True

    def navigate_to_volume(self, volume: Volume):
        self._change_directory(volume.path)

    def navigate_to_path_component(self, component: PathComponent):
        self._change_directory(component.path)

    def siblings_for(self, component: PathComponent) -> List[Entry]:
        return self.volume_manager.siblings(component.path)

    def _reject(self, path: str, reason: str):
        logger.info("Navigation to %s rejected: %s", path, reason)
        self.navigation_rejected.emit(path, reason)

    def _change_directory(self, path):
        path = canonical_path(path)
        self.state.current_directory = path
        self._end_rename()
        self._set_selected(None)
        self._update_breadcrumb()
        if self.settings is not None:
            self.settings.set('last_directory', path)
        self.directory_changed.emit(path)
        self.refresh()

    # -------- Volumes & breadcrumb -------- #
    def refresh_volumes(self) -> List[Volume]:
        self.state.volumes = self.volume_manager.refresh_volumes()
        self.volumes_changed.emit()
        self._update_breadcrumb()
        return self.state.volumes

    def _update_breadcrumb(self):
        self.state.breadcrumb = self.volume_manager.breadcrumb(self.state.current_directory)
        self.breadcrumb_changed.emit()

    # -------- Sorting & search -------- #
    def set_sort_criterion(self, criterion: SortCriterion):
        self.set_sort(criterion, self.state.sort_ascending)

    def toggle_sort_direction(self):
        self.set_sort(self.state.sort_by, not self.state.sort_ascending)

    def set_sort(self, criterion: SortCriterion, ascending: bool):
        if criterion == self.state.sort_by and ascending == self.state.sort_ascending:
            return
        self.state.sort_by = criterion
        self.state.sort_ascending = ascending
        if self.settings is not None:
            self.settings.update(sort_by=criterion.value, sort_ascending=ascending)
        self._rebuild_view()

    def set_search_text(self, text: str):
        if text == self.state.search_text:
            return
        self.state.search_text = text
        self._rebuild_view()

    # -------- Selection -------- #
    def select(self, entry: Optional[Entry]):
        if self.state.is_renaming and (entry is None or self.state.selected is None or
                                       entry.path != self.state.selected.path):
            self._end_rename()
        self._set_selected(entry)

    def select_next_media(self) -> Optional[Entry]:
        entry = adjacent_media(self.state.items, self.state.selected, forward=True)
        if entry is not None:
            self.select(entry)
        return entry

    def select_previous_media(self) -> Optional[Entry]:
        entry = adjacent_media(self.state.items, self.state.selected, forward=False)
        if entry is not None:
            self.select(entry)
        return entry

    def _set_selected(self, entry: Optional[Entry]):
        if entry is self.state.selected:
            return
        self.state.selected = entry
        self.selection_changed.emit(entry)

    # -------- Rename -------- #
    def start_rename(self) -> bool:
        entry = self.state.selected
        if entry is None:
            return False
        self.state.is_renaming = True
        self.state.rename_text = entry.name
        self.rename_state_changed.emit(True)
        return True

    def set_rename_text(self, text: str):
        self.state.rename_text = text

    def cancel_rename(self):
        self._end_rename()

    def complete_rename(self) -> bool:
        entry = self.state.selected
        if not self.state.is_renaming or entry is None:
            return False
        new_name = self.state.rename_text
        self._end_rename()
        return self.rename(entry, new_name)

    def _end_rename(self):
        if self.state.is_renaming:
            self.state.is_renaming = False
            self.state.rename_text = ''
            self.rename_state_changed.emit(False)

    def rename(self, entry: Entry, new_name: str) -> bool:
        """Rename an entry in place; False if cancelled, rejected or failed"""
        if new_name == entry.name:
            return False

        reason = FileOperations.validate_new_name(new_name)
        if reason:
            logger.info("Rename of %s to %r rejected: %s", entry.path, new_name, reason)
            self.operation_failed.emit('rename', reason)
            return False

        success, result = FileOperations.rename_item(entry.path, new_name)
        if not success:
            logger.warning("Rename of %s failed: %s", entry.path, result)
            self.operation_failed.emit('rename', result)
            return False

        renamed = self.scanner.entry_after_move(entry, result)
        if renamed is None:
            renamed = dataclasses.replace(entry, path=result, name=new_name)
        self.scanner.cache.replace(entry.path, renamed)
        self.state.all_items = [renamed if e.path == entry.path else e for e in self.state.all_items]
        self._rebuild_view()
        self._set_selected(renamed)

        # A scan that enumerated before the rename would bring the old name back
        if self._scan_task is not None:
            self.refresh()
        return True

    # -------- Delete -------- #
    def delete_selected(self) -> bool:
        if self.state.selected is None:
            return False
        return self.delete(self.state.selected)

    def delete(self, entry: Entry) -> bool:
        """Move an entry to the trash and drop it from the listing"""
        success, message = FileOperations.move_to_trash(entry.path)
        if not success:
            logger.warning("Could not move %s to trash: %s", entry.path, message)
            self.operation_failed.emit('delete', message)
            return False

        self.scanner.cache.remove(entry.path)
        self.state.all_items = [e for e in self.state.all_items if e.path != entry.path]
        if self.state.selected is not None and self.state.selected.path == entry.path:
            self._end_rename()
            self._set_selected(None)
        self._rebuild_view()

        if self._scan_task is not None:
            self.refresh()
        return True
