import os
import sys
import pytest
from pathlib import Path

# Add src directory to Python path for imports
PROJECT_ROOT = Path(__file__).parent.parent
SRC_DIR = PROJECT_ROOT / 'src'
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

# Force offscreen platform early for all tests before any Qt import to reduce GUI driver related crashes
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtGui import QGuiApplication
from PIL import Image as pilimage


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """Provide a single application instance for the whole test session.

    Queued signals from scan and preview workers are delivered through its
    event loop.
    """
    app = QGuiApplication.instance() or QGuiApplication([])
    yield app


def make_png(path, size=(4, 3), color=(200, 10, 10)):
    pilimage.new('RGB', size, color).save(path, format='PNG')
    return path


def make_gif(path, frames=3, size=(5, 5), duration=100):
    images = [pilimage.new('RGB', size, (i * 60 % 256, 0, 0)) for i in range(frames)]
    images[0].save(path, format='GIF', save_all=True, append_images=images[1:],
                   duration=duration, loop=0)
    return path


class FakeStorage:
    """Stands in for QStorageInfo"""

    def __init__(self, root, name='', fs_type=b'ext4', device=b'/dev/fake0',
                 valid=True, ready=True, available=1024, total=4096):
        self.root = str(root)
        self._name = name
        self.fs_type = fs_type
        self._device = device
        self.valid = valid
        self.ready = ready
        self.available = available
        self.total = total

    def isValid(self):
        return self.valid

    def isReady(self):
        return self.ready

    def rootPath(self):
        return self.root

    def fileSystemType(self):
        return self.fs_type

    def device(self):
        return self._device

    def name(self):
        return self._name

    def bytesAvailable(self):
        return self.available

    def bytesTotal(self):
        return self.total


@pytest.fixture
def media_dir(tmp_path):
    """A directory with one of each kind of thing a scan has to deal with"""
    root = tmp_path / 'media'
    root.mkdir()
    make_png(root / 'photo.png')
    make_gif(root / 'anim.gif')
    (root / 'notes.txt').write_text('plain text')
    (root / '.hidden.png').write_bytes((root / 'photo.png').read_bytes())
    (root / 'Album').mkdir()
    (root / '.cache').mkdir()
    return root
