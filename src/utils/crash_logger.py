"""
Crash logging and log setup for MediaBox

Fatal exceptions are written with timestamps and stack traces to a log file
and echoed to stderr; regular diagnostics go through the logging module.
"""
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(verbose=False):
    """Configure root logging for the application"""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)
    # Image plugins are chatty at debug level
    logging.getLogger('PIL').setLevel(logging.WARNING)


class CrashLogger:
    """Logger for fatal crashes and exceptions"""

    LOG_DIR = Path.home() / ".local" / "share" / "mediabox"
    LOG_FILE = LOG_DIR / "crash.log"
    MAX_LOG_SIZE = 5 * 1024 * 1024  # 5 MB

    @classmethod
    def setup(cls):
        """Create the crash log directory"""
        try:
            cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Fall back to the working directory
            cls.LOG_DIR = Path.cwd()
            cls.LOG_FILE = cls.LOG_DIR / "crash.log"

    @classmethod
    def format_entry(cls, exc_type, exc_value, exc_traceback):
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        separator = "=" * 80
        lines = [
            "",
            separator,
            f"FATAL ERROR - {timestamp}",
            separator,
            f"Exception Type: {exc_type.__name__}",
            f"Exception Message: {exc_value}",
            "",
            "Stack Trace:",
            "".join(traceback.format_exception(exc_type, exc_value, exc_traceback)).rstrip(),
            separator,
            "",
        ]
        return "\n".join(lines)

    @classmethod
    def log_exception(cls, exc_type, exc_value, exc_traceback):
        """
        Log an exception with full stack trace and timestamp.

        Args:
            exc_type: Exception type
            exc_value: Exception instance
            exc_traceback: Exception traceback
        """
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        entry = cls.format_entry(exc_type, exc_value, exc_traceback)
        try:
            cls.setup()
            cls._rotate_log_if_needed()
            with open(cls.LOG_FILE, 'a', encoding='utf-8') as f:
                f.write(entry)
            print(f"\nFATAL ERROR logged to: {cls.LOG_FILE}", file=sys.stderr)
        except OSError as e:
            print(f"Failed to write crash log: {e}", file=sys.stderr)

        logger.critical("Unhandled %s: %s", exc_type.__name__, exc_value,
                        exc_info=(exc_type, exc_value, exc_traceback))

    @classmethod
    def _rotate_log_if_needed(cls):
        """Move the log aside once it grows past MAX_LOG_SIZE"""
        try:
            if cls.LOG_FILE.exists() and cls.LOG_FILE.stat().st_size > cls.MAX_LOG_SIZE:
                backup_file = cls.LOG_FILE.with_suffix('.log.old')
                if backup_file.exists():
                    backup_file.unlink()
                cls.LOG_FILE.rename(backup_file)
        except OSError as e:
            logger.debug("Crash log rotation failed: %s", e)

    @classmethod
    def install_exception_handler(cls):
        """Install the crash logger as the global exception handler"""
        sys.excepthook = cls.log_exception

    @classmethod
    def get_log_path(cls) -> str:
        cls.setup()
        return str(cls.LOG_FILE)

    @classmethod
    def clear_log(cls):
        try:
            if cls.LOG_FILE.exists():
                cls.LOG_FILE.unlink()
        except OSError as e:
            logger.warning("Failed to clear crash log: %s", e)
