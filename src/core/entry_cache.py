"""
In-memory cache of classified entries for the directory being browsed
"""
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from core.file_item import Entry


@dataclass(frozen=True)
class CacheEntry:
    """A classified entry together with the attributes it was computed from"""

    entry: Entry
    size: int
    modified: float
    content_type: Optional[str]
    is_directory: bool

    @classmethod
    def for_entry(cls, entry: Entry) -> 'CacheEntry':
        return cls(entry, entry.size, entry.modified, entry.content_type, entry.is_directory)

    def matches(self, size: int, modified: float, content_type: Optional[str],
                is_directory: bool) -> bool:
        return (self.size == size and
                self.modified == modified and
                self.content_type == content_type and
                self.is_directory == is_directory)


class EntryCache:
    """Path-keyed cache of classified entries

    A record is reused only while size, modification time, content type and
    the directory flag all still match what was stat'd. After every scan the
    cache is pruned to the visible paths that scan stat'd, so it never holds more
    than one directory's worth of entries.
    """

    def __init__(self):
        self._records: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def lookup(self, path, size: int, modified: float, content_type: Optional[str],
               is_directory: bool) -> Optional[Entry]:
        with self._lock:
            record = self._records.get(str(path))
        if record and record.matches(size, modified, content_type, is_directory):
            return record.entry
        return None

    def get(self, path) -> Optional[Entry]:
        with self._lock:
            record = self._records.get(str(path))
        return record.entry if record else None

    def store(self, entry: Entry):
        with self._lock:
            self._records[entry.path] = CacheEntry.for_entry(entry)

    def remove(self, path):
        with self._lock:
            self._records.pop(str(path), None)

    def replace(self, old_path, entry: Entry):
        """Swap the record of a renamed item for its new identity"""
        with self._lock:
            self._records.pop(str(old_path), None)
            self._records[entry.path] = CacheEntry.for_entry(entry)

    def prune(self, paths: Iterable[str]):
        """Drop every record whose path isn't in the given set"""
        keep = {str(p) for p in paths}
        with self._lock:
            self._records = {p: r for p, r in self._records.items() if p in keep}

    def commit_scan(self, entries: Iterable[Entry]):
        """Store every entry a finished scan stat'd and prune to exactly that set"""
        entries = list(entries)
        with self._lock:
            self._records = {e.path: CacheEntry.for_entry(e) for e in entries}

    def clear(self):
        with self._lock:
            self._records.clear()

    def paths(self):
        with self._lock:
            return set(self._records)

    def __len__(self):
        with self._lock:
            return len(self._records)

    def __contains__(self, path):
        with self._lock:
            return str(path) in self._records
