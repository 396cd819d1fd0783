"""
Content type identification for directory entries

Content types are MIME names resolved through Qt's shared MIME database.
The generic fallbacks Qt reports for unrecognised data are treated as
"unresolved" (None) so the listing can keep possibly-unidentified media.
"""
from functools import lru_cache
from typing import Optional

from PyQt6.QtCore import QMimeDatabase

DIRECTORY_TYPE = 'inode/directory'

# Qt answers with these when neither the name nor the content identify a file
UNRESOLVED_TYPES = {'application/octet-stream', 'application/x-zerosize'}

# Containers that may hold more than one frame
GIF_LIKE_TYPES = {'image/gif', 'image/webp', 'image/apng', 'image/vnd.mozilla.apng'}

_mime_db: Optional[QMimeDatabase] = None


def mime_database() -> QMimeDatabase:
    """Shared MIME database (QMimeDatabase is safe to use from worker threads)"""
    global _mime_db
    if _mime_db is None:
        _mime_db = QMimeDatabase()
    return _mime_db


def content_type_for(path, is_directory: bool = False) -> Optional[str]:
    """Resolve the content type of a file, or None when it can't be identified"""
    if is_directory:
        return DIRECTORY_TYPE
    mime = mime_database().mimeTypeForFile(str(path))
    if not mime.isValid() or mime.isDefault():
        return None
    name = mime.name()
    if name in UNRESOLVED_TYPES:
        return None
    return name


@lru_cache(maxsize=512)
def _lineage(content_type: str) -> tuple:
    """The canonical type followed by every type it inherits from

    Aliases only name the type; they don't make it a member of another
    family (application/pdf is aliased as image/pdf).
    """
    mime = mime_database().mimeTypeForName(content_type)
    if not mime.isValid():
        return (content_type,)
    return (mime.name(), *mime.allAncestors())


def _family_matches(name: str, family: str) -> bool:
    if family == 'image':
        return name.startswith('image/')
    if family == 'movie':
        return name.startswith('video/')
    if family == 'audio':
        return name.startswith('audio/')
    if family == 'audiovisual':
        return name.startswith('video/') or name.startswith('audio/')
    if family == 'gif_like':
        return name in GIF_LIKE_TYPES
    raise ValueError(f"Unknown content family: {family}")


def conforms_to(content_type: Optional[str], family: str) -> bool:
    """Check whether a content type belongs to a family (directly or by inheritance)

    Families: 'image', 'movie', 'audio', 'audiovisual', 'gif_like'.
    """
    if not content_type:
        return False
    return any(_family_matches(name, family) for name in _lineage(content_type))


def is_potential_media(content_type: Optional[str]) -> bool:
    """Decide whether a non-directory entry belongs in a media listing

    Images, movies and other audiovisual content are kept, and so are
    unresolved types since they may be media Qt doesn't know about. Source
    code, structured text, archives, executables and generic applications
    all fall outside those families and are dropped.
    """
    if content_type is None:
        return True
    return conforms_to(content_type, 'image') or conforms_to(content_type, 'audiovisual')
