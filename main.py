#!/usr/bin/env python3
"""
MediaBox - Main Entry Point

Lists a directory the way the browser sees it: breadcrumb, volumes and the
classified, sorted media entries.
"""
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from PyQt6.QtCore import QCoreApplication
from core.browser_model import BrowserModel
from core.file_item import format_duration
from utils.crash_logger import CrashLogger, setup_logging
from utils.settings import Settings


def describe(entry):
    meta = entry.metadata
    details = [entry.media_kind.display_name]
    resolution = getattr(meta, 'resolution', None)
    if resolution:
        details.append(f"{resolution[0]}x{resolution[1]}")
    if getattr(meta, 'duration', None):
        details.append(format_duration(meta.duration))
    if not entry.is_directory:
        details.append(entry.formatted_size)
    return f"{entry.name:<40} {', '.join(details)}"


def main():
    # Install crash logger to catch unhandled exceptions
    CrashLogger.install_exception_handler()
    setup_logging(verbose='--verbose' in sys.argv)
    args = [arg for arg in sys.argv[1:] if not arg.startswith('--')]

    app = QCoreApplication(sys.argv)
    app.setApplicationName("MediaBox")
    app.setApplicationVersion("1.0")
    app.setOrganizationName("MediaBox")

    settings = Settings()
    model = BrowserModel(initial_directory=args[0] if args else None,
                         settings=settings, run_in_background=False)
    model.scan_failed.connect(lambda path, message: print(f"Error: {message}", file=sys.stderr))
    model.refresh_volumes()
    model.load_initial_directory()

    print(" > ".join(component.name for component in model.state.breadcrumb))
    print(f"Volumes: {', '.join(volume.name for volume in model.state.volumes)}")
    print(f"Sorted by {model.state.sort_by.display_name}"
          f" ({'ascending' if model.state.sort_ascending else 'descending'})")
    print()
    for entry in model.items:
        print(describe(entry))

    print()
    print(f"{model.folder_count} folders")
    for metric in model.metrics:
        print(f"{metric.kind.display_name}: {metric.count}")

    return 1 if model.state.scan_error else 0


if __name__ == "__main__":
    sys.exit(main())
