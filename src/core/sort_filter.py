"""
Sorting, searching and summarising classified listings

Everything here is pure: no I/O, same output for the same input.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from core.file_item import Entry, MediaKind, KIND_ORDER


class SortCriterion(Enum):
    NAME = 'name'
    SIZE = 'size'
    DATE = 'date'

    @property
    def display_name(self) -> str:
        return {
            SortCriterion.NAME: 'Name',
            SortCriterion.SIZE: 'Size',
            SortCriterion.DATE: 'Date Modified',
        }[self]

    @property
    def icon_name(self) -> str:
        return {
            SortCriterion.NAME: 'view-sort-ascending',
            SortCriterion.SIZE: 'drive-harddisk',
            SortCriterion.DATE: 'x-office-calendar',
        }[self]

    @classmethod
    def from_value(cls, value, default: 'SortCriterion' = None) -> 'SortCriterion':
        try:
            return cls(value)
        except ValueError:
            return default or cls.NAME


def _name_key(entry: Entry):
    return entry.name.casefold()


def _file_key(criterion: SortCriterion):
    if criterion == SortCriterion.SIZE:
        return lambda e: (e.size, e.name.casefold())
    if criterion == SortCriterion.DATE:
        return lambda e: (e.modified, e.name.casefold())
    return _name_key


def sort_entries(entries: Iterable[Entry], criterion: SortCriterion = SortCriterion.NAME,
                 ascending: bool = True) -> List[Entry]:
    """Directories first (always name-ascending), then files by the criterion

    The direction only flips the comparison between files.
    """
    entries = list(entries)
    directories = sorted((e for e in entries if e.is_directory), key=_name_key)
    files = sorted((e for e in entries if not e.is_directory),
                   key=_file_key(criterion), reverse=not ascending)
    return directories + files


def search_entries(entries: Iterable[Entry], text: str) -> List[Entry]:
    """Case-insensitive substring match against names

    Any non-blank search hides directories: searching only covers files.
    """
    entries = list(entries)
    if not text or not text.strip():
        return entries
    needle = text.casefold()
    return [e for e in entries if not e.is_directory and needle in e.name.casefold()]


def apply_view(entries: Iterable[Entry], criterion: SortCriterion, ascending: bool,
               search_text: str = '') -> List[Entry]:
    return search_entries(sort_entries(entries, criterion, ascending), search_text)


@dataclass(frozen=True)
class MediaMetric:
    kind: MediaKind
    count: int
    total_size: int

    def percentage(self, total: int) -> float:
        return self.count / total * 100.0 if total else 0.0


def media_metrics(entries: Iterable[Entry]) -> List[MediaMetric]:
    """Count and total size per file kind, skipping kinds with no entries"""
    counts = {kind: 0 for kind in KIND_ORDER}
    sizes = {kind: 0 for kind in KIND_ORDER}
    for entry in entries:
        if entry.is_directory:
            continue
        counts[entry.media_kind] += 1
        sizes[entry.media_kind] += entry.size
    return [MediaMetric(kind, counts[kind], sizes[kind]) for kind in KIND_ORDER if counts[kind]]


def folder_count(entries: Iterable[Entry]) -> int:
    return sum(1 for e in entries if e.is_directory)


def adjacent_media(entries: Iterable[Entry], current: Optional[Entry],
                   forward: bool = True) -> Optional[Entry]:
    """Next or previous viewable media entry, without wrapping around

    With nothing (or something non-listed) selected, the first or last media
    entry is returned depending on direction.
    """
    media = [e for e in entries if e.is_media]
    if not media:
        return None

    paths = [e.path for e in media]
    if current is None or current.path not in paths:
        return media[0] if forward else media[-1]

    index = paths.index(current.path)
    if forward:
        return media[index + 1] if index < len(media) - 1 else current
    return media[index - 1] if index > 0 else current
