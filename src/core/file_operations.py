"""
File operations and utilities
"""
import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QFile

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255


class FileOperations:
    @staticmethod
    def is_readable_directory(path):
        """Check that a path still exists, is a directory and can be listed"""
        try:
            path_obj = Path(path)
            if not path_obj.is_dir() or not os.access(path_obj, os.R_OK | os.X_OK):
                return False
            with os.scandir(path_obj):
                pass
            return True
        except (OSError, IOError):
            return False

    @staticmethod
    def validate_new_name(new_name: str) -> Optional[str]:
        """Check a proposed file name; returns the reason it's rejected, or None"""
        if not new_name or not new_name.strip():
            return "The name cannot be empty."
        if new_name in ('.', '..'):
            return f"'{new_name}' is not a valid name."
        if new_name.startswith('.'):
            return "Names starting with a dot would hide the item."
        if len(new_name) > MAX_NAME_LENGTH:
            return f"The name is longer than {MAX_NAME_LENGTH} characters."
        if ':' in new_name:
            return "The name cannot contain a colon."
        if '\x00' in new_name:
            return "The name cannot contain a NUL character."
        if any(ord(c) < 32 or 127 <= ord(c) < 160 for c in new_name):
            return "The name cannot contain control characters."
        if os.sep in new_name or (os.altsep and os.altsep in new_name):
            return f"The name cannot contain '{os.sep}'."
        return None

    @staticmethod
    def rename_item(old_path, new_name):
        """Rename a file or folder within its directory

        Returns (True, new_path) on success, (False, reason) otherwise.
        """
        try:
            old_path_obj = Path(old_path)
            new_path = old_path_obj.parent / new_name

            if new_name == old_path_obj.name:
                return True, str(old_path_obj)  # No change needed

            # A differently named existing item is a collision; the same file
            # means a case-only rename on a case-insensitive file system
            if new_path.exists() and not new_path.samefile(old_path_obj):
                return False, f"A file or folder named '{new_name}' already exists in this location."

            old_path_obj.rename(new_path)
            return True, str(new_path)
        except (OSError, IOError) as e:
            return False, e.strerror or str(e)

    @staticmethod
    def move_to_trash(path):
        """Move item to the platform trash (never a permanent delete)"""
        try:
            if QFile(str(path)).moveToTrash():
                return True, ""
        except (OSError, RuntimeError) as e:
            logger.debug("Qt trash failed for %s: %s", path, e)

        try:
            # gio trash works on most Linux desktops
            subprocess.run(['gio', 'trash', str(path)], check=True, capture_output=True)
            return True, ""
        except (subprocess.CalledProcessError, FileNotFoundError):
            try:
                # Fallback to trash-cli if available
                subprocess.run(['trash', str(path)], check=True, capture_output=True)
                return True, ""
            except (subprocess.CalledProcessError, FileNotFoundError):
                return False, "Trash is not available for this location"
