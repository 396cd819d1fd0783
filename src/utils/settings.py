"""
Settings management for MediaBox
"""
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class Settings:
    # Class-level cache to share data between instances reading the same file
    _cached_settings = None
    _cache_file = None
    _cache_file_mtime = None

    DEFAULTS = {
        "sort_by": "name",
        "sort_ascending": True,
        "last_directory": None,
        "cloud_sync_root": None,
    }

    def __init__(self, config_dir=None):
        self.config_dir = Path(config_dir) if config_dir else Path.home() / ".config" / "mediabox"
        self.config_file = self.config_dir / "settings.json"
        self.settings = self.load_settings()

    def load_settings(self):
        """Load settings from config file with caching"""
        default_settings = dict(self.DEFAULTS)

        if not self.config_file.exists():
            return default_settings

        try:
            # Check file modification time for cache invalidation
            current_mtime = self.config_file.stat().st_mtime

            if (Settings._cached_settings is not None and
                    Settings._cache_file == self.config_file and
                    Settings._cache_file_mtime == current_mtime):
                return Settings._cached_settings.copy()

            with open(self.config_file, 'r') as f:
                loaded = json.load(f)
            if not isinstance(loaded, dict):
                raise ValueError("settings file does not hold an object")

            # Merge with defaults to handle new settings
            default_settings.update(loaded)

            Settings._cached_settings = default_settings.copy()
            Settings._cache_file = self.config_file
            Settings._cache_file_mtime = current_mtime

            return default_settings
        except (json.JSONDecodeError, ValueError, IOError, OSError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self.config_file, e)
            return default_settings

    def save_settings(self):
        """Save current settings to config file"""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w') as f:
                json.dump(self.settings, f, indent=2)

            # Invalidate cache after saving
            Settings._cached_settings = None
            Settings._cache_file_mtime = None
        except (IOError, OSError) as e:
            logger.warning("Could not save settings to %s: %s", self.config_file, e)

    def get(self, key, default=None):
        """Get a setting value"""
        return self.settings.get(key, default)

    def set(self, key, value):
        """Set a setting value"""
        # Always reload settings before modifying to get latest data
        self.settings = self.load_settings()
        self.settings[key] = value
        self.save_settings()

    def update(self, **values):
        """Set several values with a single write"""
        self.settings = self.load_settings()
        self.settings.update(values)
        self.save_settings()
