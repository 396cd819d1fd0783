"""
Preview decoding for the selected entry

Decoding runs on a worker thread. Only the most recent request is ever
reported; anything it superseded is cancelled and its result dropped.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import cv2
from PIL import Image as pilimage
from PIL import ImageOps, ImageSequence
from PyQt6.QtCore import QObject, QCoreApplication, pyqtSignal
from PyQt6.QtGui import QImage

from core.classifier import EntryClassifier, video_lock
from core.file_item import Entry, MediaKind

logger = logging.getLogger(__name__)


class PreviewError(Exception):
    pass


class PreviewCancelled(Exception):
    pass


def pil_to_qimage(pil_image) -> QImage:
    """Convert PIL image to a QImage that owns its pixels"""
    pil_image = pil_image.convert("RGBA")
    data = pil_image.tobytes("raw", "RGBA")
    qimage = QImage(data, pil_image.width, pil_image.height, pil_image.width * 4,
                    QImage.Format.Format_RGBA8888)
    return qimage.copy()


@dataclass
class Preview:
    request_id: int
    entry: Entry
    image: Optional[QImage] = None
    frames: List[Tuple[QImage, float]] = field(default_factory=list)  # (frame, delay in seconds)
    fps: Optional[float] = None
    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def is_animated(self) -> bool:
        return len(self.frames) > 1


class PreviewLoader(QObject):
    preview_ready = pyqtSignal(object)  # Preview
    preview_failed = pyqtSignal(str, str)  # path, message

    # Worker -> owner thread hand-off
    _loaded = pyqtSignal(int, object)
    _load_failed = pyqtSignal(int, str, str)

    def __init__(self, classifier: Optional[EntryClassifier] = None, parent=None):
        super().__init__(parent)
        self.classifier = classifier or EntryClassifier()
        self._request_id = 0
        self._cancel: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._loaded.connect(self._on_loaded)
        self._load_failed.connect(self._on_load_failed)

    @property
    def request_id(self) -> int:
        return self._request_id

    def load(self, entry: Entry) -> int:
        """Start decoding a preview for entry; returns the request id"""
        self.cancel()
        self._request_id += 1
        request_id = self._request_id

        cancel = threading.Event()
        self._cancel = cancel
        self._thread = threading.Thread(target=self._run, args=(request_id, entry, cancel),
                                        daemon=True)
        self._thread.start()
        return request_id

    def cancel(self):
        if self._cancel is not None:
            self._cancel.set()
            self._cancel = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the current worker and deliver whatever it produced"""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        QCoreApplication.processEvents()
        return not thread.is_alive()

    def _run(self, request_id: int, entry: Entry, cancel: threading.Event):
        try:
            preview = self.decode(entry, cancel, request_id)
        except PreviewCancelled:
            logger.debug("Preview of %s cancelled", entry.path)
            return
        except PreviewError as e:
            self._load_failed.emit(request_id, entry.path, str(e))
            return
        except Exception as e:  # noqa: BLE001
            logger.exception("Unexpected error decoding %s", entry.path)
            self._load_failed.emit(request_id, entry.path, str(e))
            return
        self._loaded.emit(request_id, preview)

    def _on_loaded(self, request_id: int, preview):
        if request_id != self._request_id:
            return
        self.preview_ready.emit(preview)

    def _on_load_failed(self, request_id: int, path: str, message: str):
        if request_id != self._request_id:
            return
        logger.info("Could not preview %s: %s", path, message)
        self.preview_failed.emit(path, message)

    # -------- Decoding -------- #
    def decode(self, entry: Entry, cancel_event: Optional[threading.Event] = None,
               request_id: int = 0) -> Preview:
        """Decode a preview synchronously

        Raises PreviewError for entries that can't be previewed and
        PreviewCancelled when cancel_event is set part way through.
        """
        kind = entry.media_kind
        if kind == MediaKind.VIDEO:
            return self._decode_video(entry, request_id)
        if kind == MediaKind.ANIMATED_IMAGE:
            return self._decode_animated(entry, cancel_event, request_id)
        if kind == MediaKind.STATIC_IMAGE:
            return self._decode_image(entry, request_id)
        raise PreviewError(f"{kind.display_name} items have no preview")

    def _decode_image(self, entry: Entry, request_id: int) -> Preview:
        try:
            with pilimage.open(entry.path) as image:
                image = ImageOps.exif_transpose(image)
                qimage = pil_to_qimage(image)
        except (OSError, ValueError) as e:
            raise PreviewError(f"Cannot decode image: {e}") from e
        return Preview(request_id, entry, image=qimage,
                       width=qimage.width(), height=qimage.height())

    def _decode_animated(self, entry: Entry, cancel_event: Optional[threading.Event],
                         request_id: int) -> Preview:
        frames = []
        try:
            with pilimage.open(entry.path) as image:
                default_delay = image.info.get('duration')
                for frame in ImageSequence.Iterator(image):
                    if cancel_event is not None and cancel_event.is_set():
                        raise PreviewCancelled(entry.path)
                    delay_ms = frame.info.get('duration', default_delay)
                    delay = 1.0 / self.classifier.frame_rate_for_delay(delay_ms)
                    frames.append((pil_to_qimage(frame), delay))
        except (OSError, ValueError) as e:
            raise PreviewError(f"Cannot decode frames: {e}") from e

        if not frames:
            raise PreviewError("Image has no frames")
        first = frames[0][0]
        return Preview(request_id, entry, image=first, frames=frames,
                       fps=getattr(entry.metadata, 'frame_rate', None),
                       duration=sum(delay for _, delay in frames),
                       width=first.width(), height=first.height())

    def _decode_video(self, entry: Entry, request_id: int) -> Preview:
        with video_lock:
            cap = cv2.VideoCapture(entry.path)
            try:
                if not cap.isOpened():
                    raise PreviewError("Cannot open video")
                fps = cap.get(cv2.CAP_PROP_FPS)
                frame_count = cap.get(cv2.CAP_PROP_FRAME_COUNT)
                ret, frame = cap.read()
                if not ret or frame is None:
                    raise PreviewError("Cannot read the first frame")
            finally:
                cap.release()

        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        height, width = frame_rgb.shape[:2]
        qimage = QImage(frame_rgb.data.tobytes(), width, height, width * 3,
                        QImage.Format.Format_RGB888).copy()
        duration = frame_count / fps if fps > 0 and frame_count > 0 else None
        return Preview(request_id, entry, image=qimage, fps=fps if fps > 0 else None,
                       duration=duration, width=width, height=height)
