"""
Unit tests for PreviewLoader
"""
import threading
from types import SimpleNamespace

import numpy
import pytest
from PIL import Image as pilimage

from conftest import make_png, make_gif
from core import preview_loader as preview_module
from core.directory_scanner import DirectoryScanner
from core.file_item import Entry, StaticImageInfo, VideoInfo, UnknownInfo
from core.preview_loader import PreviewLoader, PreviewError, PreviewCancelled


def scanned(path):
    return DirectoryScanner().entry_for(path)


class TestDecode:
    """Tests for synchronous decoding"""

    def test_static_image(self, tmp_path):
        entry = scanned(make_png(tmp_path / 'photo.png', size=(4, 3)))
        preview = PreviewLoader().decode(entry)

        assert preview.image.width() == 4
        assert preview.image.height() == 3
        assert preview.frames == []
        assert preview.is_animated is False

    def test_exif_orientation_is_applied(self, tmp_path):
        """Test that a rotated JPEG is previewed upright"""
        path = tmp_path / 'rotated.jpg'
        exif = pilimage.Exif()
        exif[0x0112] = 6  # rotate 90 degrees clockwise
        pilimage.new('RGB', (8, 2), (0, 0, 255)).save(path, format='JPEG', exif=exif)

        preview = PreviewLoader().decode(scanned(path))

        assert (preview.width, preview.height) == (2, 8)

    def test_animated_frames(self, tmp_path):
        entry = scanned(make_gif(tmp_path / 'anim.gif', frames=3, duration=50))
        preview = PreviewLoader().decode(entry)

        assert preview.is_animated
        assert len(preview.frames) == 3
        assert [delay for _, delay in preview.frames] == pytest.approx([0.05, 0.05, 0.05])
        assert preview.fps == pytest.approx(20.0)
        assert preview.duration == pytest.approx(0.15)

    def test_cancelled_animation(self, tmp_path):
        entry = scanned(make_gif(tmp_path / 'anim.gif'))
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(PreviewCancelled):
            PreviewLoader().decode(entry, cancel)

    def test_unknown_has_no_preview(self, tmp_path):
        entry = Entry(str(tmp_path / 'x'), 'x', False, 1, 0.0, None, UnknownInfo())
        with pytest.raises(PreviewError):
            PreviewLoader().decode(entry)

    def test_broken_image(self, tmp_path):
        path = tmp_path / 'broken.png'
        path.write_text('not a png')
        entry = Entry(str(path), path.name, False, 9, 0.0, 'image/png', StaticImageInfo())
        with pytest.raises(PreviewError):
            PreviewLoader().decode(entry)

    def test_video_first_frame(self, tmp_path, monkeypatch):
        class FakeCapture:
            def __init__(self, path):
                self.path = path

            def isOpened(self):
                return True

            def get(self, prop):
                return {1: 30.0, 2: 90.0}.get(prop, 0)

            def read(self):
                return True, numpy.zeros((2, 3, 3), dtype=numpy.uint8)

            def release(self):
                pass

        fake = SimpleNamespace(VideoCapture=FakeCapture, CAP_PROP_FPS=1, CAP_PROP_FRAME_COUNT=2,
                               COLOR_BGR2RGB=4, cvtColor=lambda frame, code: frame)
        monkeypatch.setattr(preview_module, 'cv2', fake)
        entry = Entry(str(tmp_path / 'clip.mp4'), 'clip.mp4', False, 1, 0.0, 'video/mp4',
                      VideoInfo(3.0, 3, 2))

        preview = PreviewLoader().decode(entry)

        assert (preview.width, preview.height) == (3, 2)
        assert preview.image.width() == 3
        assert preview.fps == pytest.approx(30.0)
        assert preview.duration == pytest.approx(3.0)


class TestLoad:
    """Tests for background loading"""

    def test_load_reports_preview(self, tmp_path):
        loader = PreviewLoader()
        ready = []
        loader.preview_ready.connect(ready.append)
        entry = scanned(make_png(tmp_path / 'photo.png'))

        request_id = loader.load(entry)
        assert loader.wait(10)

        assert len(ready) == 1
        assert ready[0].request_id == request_id
        assert ready[0].entry == entry

    def test_load_reports_failure(self, tmp_path):
        loader = PreviewLoader()
        failures = []
        loader.preview_failed.connect(lambda path, message: failures.append(path))
        path = tmp_path / 'broken.png'
        path.write_text('not a png')

        loader.load(Entry(str(path), path.name, False, 9, 0.0, 'image/png', StaticImageInfo()))
        assert loader.wait(10)

        assert failures == [str(path)]

    def test_superseded_request_is_dropped(self, tmp_path):
        """Test that only the latest request reports back"""
        loader = PreviewLoader()
        ready = []
        loader.preview_ready.connect(ready.append)
        first = scanned(make_png(tmp_path / 'first.png'))
        second = scanned(make_png(tmp_path / 'second.png'))

        loader.load(first)
        first_thread = loader._thread
        latest = loader.load(second)
        first_thread.join(10)
        assert loader.wait(10)

        assert [p.request_id for p in ready] == [latest]
        assert ready[0].entry == second
