"""
Classified directory entries and their per-kind metadata
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class MediaKind(Enum):
    """Closed set of media kinds an entry can be classified as"""

    DIRECTORY = 'directory'
    STATIC_IMAGE = 'static_image'
    ANIMATED_IMAGE = 'animated_image'
    VIDEO = 'video'
    UNKNOWN = 'unknown'

    @property
    def display_name(self) -> str:
        return {
            MediaKind.DIRECTORY: 'Folder',
            MediaKind.STATIC_IMAGE: 'Image',
            MediaKind.ANIMATED_IMAGE: 'Animated Image',
            MediaKind.VIDEO: 'Video',
            MediaKind.UNKNOWN: 'Other',
        }[self]

    @property
    def icon_name(self) -> str:
        return {
            MediaKind.DIRECTORY: 'folder',
            MediaKind.STATIC_IMAGE: 'image-x-generic',
            MediaKind.ANIMATED_IMAGE: 'image-gif',
            MediaKind.VIDEO: 'video-x-generic',
            MediaKind.UNKNOWN: 'text-x-generic',
        }[self]

    @property
    def is_viewable(self) -> bool:
        return self in (MediaKind.STATIC_IMAGE, MediaKind.ANIMATED_IMAGE, MediaKind.VIDEO)


# Order used when presenting per-kind summaries
KIND_ORDER = (MediaKind.STATIC_IMAGE, MediaKind.ANIMATED_IMAGE, MediaKind.VIDEO, MediaKind.UNKNOWN)


@dataclass(frozen=True)
class DirectoryInfo:
    kind = MediaKind.DIRECTORY


@dataclass(frozen=True)
class StaticImageInfo:
    width: Optional[int] = None
    height: Optional[int] = None

    kind = MediaKind.STATIC_IMAGE

    @property
    def resolution(self) -> Optional[tuple]:
        if self.width is None or self.height is None:
            return None
        return (self.width, self.height)


@dataclass(frozen=True)
class AnimatedImageInfo:
    frame_count: int
    frame_rate: float
    width: Optional[int] = None
    height: Optional[int] = None

    kind = MediaKind.ANIMATED_IMAGE

    @property
    def resolution(self) -> Optional[tuple]:
        if self.width is None or self.height is None:
            return None
        return (self.width, self.height)

    @property
    def duration(self) -> float:
        """Playback length in seconds at the estimated frame rate"""
        return self.frame_count / self.frame_rate


@dataclass(frozen=True)
class VideoInfo:
    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None

    kind = MediaKind.VIDEO

    @property
    def resolution(self) -> Optional[tuple]:
        if self.width is None or self.height is None:
            return None
        return (self.width, self.height)


@dataclass(frozen=True)
class UnknownInfo:
    kind = MediaKind.UNKNOWN


MediaInfo = Union[DirectoryInfo, StaticImageInfo, AnimatedImageInfo, VideoInfo, UnknownInfo]


def format_size(size) -> str:
    """Format a byte count in human readable form"""
    if size < 1024:
        return f"{size} B"
    size /= 1024.0
    for unit in ['KB', 'MB']:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.2f} GB"


def format_duration(seconds: Optional[float]) -> str:
    if seconds is None:
        return '--:--'
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


@dataclass(frozen=True)
class Entry:
    """One classified file-system item

    The media kind comes from the metadata variant, so it can't drift away
    from what the classifier decided.
    """

    path: str
    name: str
    is_directory: bool
    size: int
    modified: float
    content_type: Optional[str]
    metadata: MediaInfo = field(default_factory=UnknownInfo)

    @property
    def media_kind(self) -> MediaKind:
        return self.metadata.kind

    @property
    def is_media(self) -> bool:
        return self.media_kind.is_viewable

    @property
    def modified_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.modified)

    @property
    def formatted_size(self) -> str:
        return format_size(self.size)

    @property
    def icon_name(self) -> str:
        return self.media_kind.icon_name

    def __repr__(self):
        return f"Entry(name={self.name!r}, kind={self.media_kind.value}, size={self.size})"
