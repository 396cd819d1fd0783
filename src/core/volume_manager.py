"""
Volume management for MediaBox

Detects mounted storage volumes through Qt's QStorageInfo, resolves which
volume owns a path, and turns a path into a breadcrumb chain of navigable
components. Well-known user folders get their own icons, following the XDG
User Directories names used by Nautilus, Dolphin and other file managers.
"""
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QStorageInfo

from core.content_types import DIRECTORY_TYPE
from core.file_item import Entry, DirectoryInfo, format_size

logger = logging.getLogger(__name__)


class VolumeType(Enum):
    INTERNAL = 'internal'
    EXTERNAL = 'external'
    NETWORK = 'network'
    CLOUD_SYNC = 'cloud_sync'

    @property
    def icon(self) -> str:
        return {
            VolumeType.INTERNAL: 'drive-harddisk',
            VolumeType.EXTERNAL: 'drive-removable-media',
            VolumeType.NETWORK: 'folder-remote',
            VolumeType.CLOUD_SYNC: 'folder-cloud',
        }[self]

    @property
    def display_name(self) -> str:
        return {
            VolumeType.INTERNAL: 'Internal Drive',
            VolumeType.EXTERNAL: 'External Drive',
            VolumeType.NETWORK: 'Network',
            VolumeType.CLOUD_SYNC: 'Cloud Drive',
        }[self]

    @property
    def priority(self) -> int:
        return _TYPE_PRIORITY[self]


_TYPE_PRIORITY = {
    VolumeType.INTERNAL: 0,
    VolumeType.EXTERNAL: 1,
    VolumeType.NETWORK: 2,
    VolumeType.CLOUD_SYNC: 3,
}


@dataclass(frozen=True)
class Volume:
    """A mounted volume (or cloud-sync root) the user can browse"""

    path: str
    name: str
    volume_type: VolumeType
    is_available: bool = True
    free_space: Optional[int] = None
    total_space: Optional[int] = None

    @property
    def icon(self) -> str:
        return self.volume_type.icon

    @property
    def formatted_capacity(self) -> str:
        if self.free_space is None or self.total_space is None:
            return ''
        return f"{format_size(self.free_space)} free of {format_size(self.total_space)}"


@dataclass(frozen=True)
class PathComponent:
    """One breadcrumb segment"""

    path: str
    name: str
    icon: str = 'folder'
    is_volume: bool = False
    volume_type: Optional[VolumeType] = None
    is_clickable: bool = True


def canonical_path(path) -> str:
    """Absolute path with symbolic links resolved and '..'/'.' collapsed"""
    return os.path.realpath(os.path.abspath(os.path.expanduser(str(path))))


def _is_within(target: str, root: str) -> bool:
    if root == os.sep:
        return target.startswith(os.sep)
    return target == root or target.startswith(root + os.sep)


class VolumeManager:
    """
    Tracks mounted volumes and resolves paths against them.

    Volumes are classified as:
    - NETWORK when the file system isn't local (NFS, SMB/CIFS, SSHFS, ...)
    - EXTERNAL when the backing block device is removable, or the volume is
      mounted under a removable-media location (/media, /run/media, /Volumes)
    - INTERNAL otherwise

    A synthetic CLOUD_SYNC volume is added for the first cloud-sync folder
    found (iCloud Drive, Dropbox, OneDrive, Google Drive, Nextcloud).
    """

    # Well-known folders: (XDG directory type, default folder names, icon)
    WELL_KNOWN_DIRS = [
        ('DESKTOP', ('Desktop',), 'user-desktop'),
        ('DOCUMENTS', ('Documents',), 'folder-documents'),
        ('DOWNLOAD', ('Downloads',), 'folder-downloads'),
        ('PICTURES', ('Pictures',), 'folder-pictures'),
        ('VIDEOS', ('Movies', 'Videos'), 'folder-videos'),
        ('MUSIC', ('Music',), 'folder-music'),
    ]

    NETWORK_FS_TYPES = {
        'nfs', 'nfs4', 'cifs', 'smbfs', 'smb3', 'sshfs', 'fuse.sshfs', 'afpfs',
        'webdav', 'davfs', 'fuse.davfs2', 'ncpfs', '9p', 'fuse.rclone', 'fuse.gvfsd-fuse',
    }

    PSEUDO_FS_TYPES = {
        'proc', 'sysfs', 'devtmpfs', 'devpts', 'tmpfs', 'cgroup', 'cgroup2', 'overlay',
        'squashfs', 'autofs', 'securityfs', 'debugfs', 'tracefs', 'pstore', 'bpf',
        'mqueue', 'hugetlbfs', 'fusectl', 'configfs', 'binfmt_misc', 'nsfs', 'ramfs',
        'efivarfs', 'devfs',
    }

    SYSTEM_MOUNT_PREFIXES = ('/proc', '/sys', '/dev', '/run', '/snap', '/boot', '/var/lib',
                             '/etc', '/System/Volumes', '/private/var')

    REMOVABLE_MOUNT_PREFIXES = ('/media/', '/run/media/', '/Volumes/')

    def __init__(self, storage_source: Optional[Callable[[], Iterable]] = None,
                 cloud_roots: Optional[Sequence[Tuple[str, str]]] = None,
                 home: Optional[str] = None):
        """
        Args:
            storage_source: Callable returning QStorageInfo-like objects
                (defaults to QStorageInfo.mountedVolumes)
            cloud_roots: (name, path) candidates for the cloud-sync volume,
                checked in order
            home: Home directory used for cloud roots and XDG folder lookup
        """
        self.home = home or str(Path.home())
        self._storage_source = storage_source or QStorageInfo.mountedVolumes
        self._cloud_roots = list(cloud_roots) if cloud_roots is not None else self.default_cloud_roots(self.home)
        self._well_known_cache: Optional[dict] = None
        self.volumes: List[Volume] = []
        self.cloud_sync_root: Optional[str] = None

    @staticmethod
    def default_cloud_roots(home: str) -> List[Tuple[str, str]]:
        home_path = Path(home)
        return [
            ('iCloud Drive', str(home_path / 'Library' / 'Mobile Documents' / 'com~apple~CloudDocs')),
            ('Dropbox', str(home_path / 'Dropbox')),
            ('OneDrive', str(home_path / 'OneDrive')),
            ('Google Drive', str(home_path / 'Google Drive')),
            ('Nextcloud', str(home_path / 'Nextcloud')),
        ]

    # -------- Volume enumeration -------- #
    def refresh_volumes(self) -> List[Volume]:
        """
        Re-enumerate mounted volumes.

        Returns:
            Volumes sorted internal < external < network < cloud-sync, then by name
        """
        detected = []
        seen = set()

        for storage in self._storage_source():
            try:
                volume = self._volume_from_storage(storage)
            except (OSError, ValueError) as e:
                logger.warning("Error reading volume info: %s", e)
                continue
            if volume is None or volume.path in seen:
                continue
            seen.add(volume.path)
            detected.append(volume)

        self.cloud_sync_root = self._detect_cloud_sync_root()
        if self.cloud_sync_root:
            name = next(n for n, p in self._cloud_roots if p == self.cloud_sync_root)
            detected.append(Volume(self.cloud_sync_root, name, VolumeType.CLOUD_SYNC))

        detected.sort(key=lambda v: (v.volume_type.priority, v.name.casefold()))
        self.volumes = detected
        return detected

    def _volume_from_storage(self, storage) -> Optional[Volume]:
        if not storage.isValid() or not storage.isReady():
            return None

        root_path = storage.rootPath()
        fs_type = bytes(storage.fileSystemType()).decode('utf-8', 'ignore').lower()
        device = bytes(storage.device()).decode('utf-8', 'ignore')

        if self._is_hidden_mount(root_path, fs_type):
            return None

        if self._is_network(fs_type, device):
            volume_type = VolumeType.NETWORK
        elif self._is_removable(device, root_path):
            volume_type = VolumeType.EXTERNAL
        else:
            volume_type = VolumeType.INTERNAL

        name = storage.name() or os.path.basename(root_path.rstrip('/')) or 'Root'
        free = storage.bytesAvailable()
        total = storage.bytesTotal()

        return Volume(
            path=root_path,
            name=name,
            volume_type=volume_type,
            is_available=True,
            free_space=free if free >= 0 else None,
            total_space=total if total > 0 else None,
        )

    def _is_hidden_mount(self, root_path: str, fs_type: str) -> bool:
        if root_path == '/':
            return False
        if not os.path.isdir(root_path):
            return True
        if fs_type in self.PSEUDO_FS_TYPES:
            return True
        if root_path.startswith(self.REMOVABLE_MOUNT_PREFIXES):
            return False
        return any(root_path == p or root_path.startswith(p + '/') for p in self.SYSTEM_MOUNT_PREFIXES)

    def _is_network(self, fs_type: str, device: str) -> bool:
        if fs_type in self.NETWORK_FS_TYPES:
            return True
        # host:/export (NFS) and //server/share (SMB)
        return device.startswith('//') or (':/' in device and not device.startswith('/'))

    def _is_removable(self, device: str, root_path: str) -> bool:
        if root_path.startswith(self.REMOVABLE_MOUNT_PREFIXES):
            return True

        name = os.path.basename(device)
        if not name:
            return False
        try:
            block = (Path('/sys/class/block') / name).resolve(strict=True)
            if (block / 'partition').exists():
                block = block.parent
            return (block / 'removable').read_text().strip() == '1'
        except OSError:
            return False

    def _detect_cloud_sync_root(self) -> Optional[str]:
        for _name, path in self._cloud_roots:
            if os.path.isdir(path):
                return path
        return None

    # -------- Path resolution -------- #
    def resolve_volume(self, path) -> Optional[Volume]:
        """
        Find the volume owning a path.

        Mount points nest (a network share lives below the internal drive's
        root), so the volume with the longest canonical path wins.

        Args:
            path: Any absolute path, existing or not

        Returns:
            The most specific volume, or None if no volume contains the path
        """
        target = canonical_path(path)
        best_match = None
        longest = -1

        for volume in self.volumes:
            volume_path = canonical_path(volume.path)
            # Prefixes only count on a component boundary: /Volumes/ExtB is not
            # inside /Volumes/Ext
            if _is_within(target, volume_path) and len(volume_path) > longest:
                best_match = volume
                longest = len(volume_path)

        return best_match

    def breadcrumb(self, path) -> List[PathComponent]:
        """
        Decompose a path into breadcrumb components.

        The owning volume comes first, followed by one component per path
        segment below it. Without an owning volume the chain starts at the
        file system root. The result is never empty.
        """
        target = canonical_path(path)
        volume = self.resolve_volume(target)

        if volume is None:
            components = [PathComponent(path=os.sep, name=os.sep)]
            building = os.sep
            for part in Path(target).parts[1:]:
                building = os.path.join(building, part)
                components.append(PathComponent(path=building, name=part))
            return components

        components = [PathComponent(
            path=volume.path,
            name=volume.name,
            icon=volume.icon,
            is_volume=True,
            volume_type=volume.volume_type,
        )]

        volume_path = canonical_path(volume.path)
        relative = target[len(volume_path):]
        building = volume.path
        for part in [p for p in relative.split(os.sep) if p]:
            building = os.path.join(building, part)
            components.append(PathComponent(path=building, name=part, icon=self.icon_for_folder(building)))

        return components

    def icon_for_folder(self, path) -> str:
        """Icon hint for a folder: well-known user folders get their own"""
        name = os.path.basename(str(path).rstrip(os.sep)).casefold()
        for _xdg_type, names, icon in self.WELL_KNOWN_DIRS:
            if name in (n.casefold() for n in names):
                return icon
        return self._xdg_icons().get(canonical_path(path), 'folder')

    def _xdg_icons(self) -> dict:
        """Map of configured XDG user directories to their icons"""
        if self._well_known_cache is None:
            configured = self._parse_user_dirs_file()
            icons = {}
            for xdg_type, _names, icon in self.WELL_KNOWN_DIRS:
                location = configured.get(f'XDG_{xdg_type}_DIR')
                if location and location != self.home:
                    icons[canonical_path(location)] = icon
            self._well_known_cache = icons
        return self._well_known_cache

    def _parse_user_dirs_file(self) -> dict:
        """
        Parse ~/.config/user-dirs.dirs.

        Returns:
            Dictionary mapping XDG_*_DIR to paths
        """
        dirs = {}
        config_file = Path(self.home) / '.config' / 'user-dirs.dirs'

        if not config_file.exists():
            return dirs

        try:
            with open(config_file, 'r') as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith('#') or '=' not in line:
                        continue

                    # Lines look like: XDG_DESKTOP_DIR="$HOME/Desktop"
                    key, value = line.split('=', 1)
                    value = value.strip().strip('"\'')
                    if value.startswith('$HOME/'):
                        value = str(Path(self.home) / value[6:])
                    dirs[key.strip()] = value

        except (OSError, IOError) as e:
            logger.debug("Could not read %s: %s", config_file, e)

        return dirs

    def volume_for_component(self, component: PathComponent) -> Optional[Volume]:
        if not component.is_volume:
            return None
        for volume in self.volumes:
            if volume.path == component.path:
                return volume
        return None

    def siblings(self, path) -> List[Entry]:
        """
        List the sub-directories next to a path (the parent's children).

        Returns:
            Readable, non-hidden directories sorted by name; empty on failure
        """
        parent = os.path.dirname(canonical_path(path))
        siblings = []

        try:
            for child in Path(parent).iterdir():
                if child.name.startswith('.'):
                    continue
                try:
                    if not child.is_dir() or not os.access(child, os.R_OK):
                        continue
                    modified = child.stat().st_mtime
                except OSError:
                    continue
                siblings.append(Entry(
                    path=str(child),
                    name=child.name,
                    is_directory=True,
                    size=0,
                    modified=modified,
                    content_type=DIRECTORY_TYPE,
                    metadata=DirectoryInfo(),
                ))
        except OSError as e:
            logger.warning("Error getting sibling directories for %s: %s", path, e)
            return []

        siblings.sort(key=lambda e: e.name.casefold())
        return siblings
