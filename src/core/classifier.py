"""
Media classification for directory entries

Classification is best effort: a file that can't be probed degrades to an
unknown kind (or to absent metadata fields) instead of raising.
"""
import logging
import os
import threading
from typing import Optional, Tuple

import cv2
import imagesize
from PIL import Image as pilimage

from core.content_types import conforms_to
from core.file_item import (Entry, DirectoryInfo, StaticImageInfo, AnimatedImageInfo,
                            VideoInfo, UnknownInfo, MediaInfo)

logger = logging.getLogger(__name__)

# OpenCV/ffmpeg is not reliably re-entrant across threads
video_lock = threading.Lock()


class EntryClassifier:
    """Turns stat'd attributes plus a content type into a classified Entry"""

    DEFAULT_FRAME_RATE = 10.0
    MINIMUM_FRAME_DELAY = 0.01  # seconds

    def classify(self, path, is_directory: bool, size: int, modified: float,
                 content_type: Optional[str]) -> Entry:
        path = str(path)
        return Entry(
            path=path,
            name=os.path.basename(path.rstrip(os.sep)) or path,
            is_directory=is_directory,
            size=size,
            modified=modified,
            content_type=content_type,
            metadata=self.probe(path, is_directory, content_type),
        )

    def probe(self, path: str, is_directory: bool, content_type: Optional[str]) -> MediaInfo:
        """Pick the media kind and extract the metadata that goes with it"""
        if is_directory:
            return DirectoryInfo()
        if conforms_to(content_type, 'movie'):
            return self._probe_video(path)
        if conforms_to(content_type, 'gif_like'):
            return self._probe_animated(path)
        if conforms_to(content_type, 'image'):
            return StaticImageInfo(*self._probe_image_size(path))
        return UnknownInfo()

    def frame_rate_for_delay(self, delay_ms) -> float:
        """Playback rate for a per-frame delay given in milliseconds"""
        if delay_ms is None or delay_ms <= 0:
            return self.DEFAULT_FRAME_RATE
        return 1.0 / max(delay_ms / 1000.0, self.MINIMUM_FRAME_DELAY)

    def _probe_video(self, path: str) -> VideoInfo:
        with video_lock:
            cap = None
            try:
                cap = cv2.VideoCapture(path)
                if not cap.isOpened():
                    logger.debug("Could not open video %s", path)
                    return VideoInfo()

                fps = cap.get(cv2.CAP_PROP_FPS)
                frame_count = cap.get(cv2.CAP_PROP_FRAME_COUNT)
                width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
                height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

                duration = frame_count / fps if fps > 0 and frame_count > 0 else None
                if width <= 0 or height <= 0:
                    width = height = None
                return VideoInfo(duration=duration, width=width, height=height)
            except Exception as e:  # noqa: BLE001
                logger.debug("Video probe failed for %s: %s", path, e)
                return VideoInfo()
            finally:
                if cap is not None:
                    cap.release()

    def _probe_animated(self, path: str) -> MediaInfo:
        try:
            with pilimage.open(path) as image:
                frame_count = getattr(image, 'n_frames', 1)
                delay = image.info.get('duration')
                width, height = image.size
        except Exception as e:  # noqa: BLE001
            logger.debug("Could not decode frames of %s: %s", path, e)
            return UnknownInfo()

        if frame_count > 1:
            return AnimatedImageInfo(
                frame_count=frame_count,
                frame_rate=self.frame_rate_for_delay(delay),
                width=width,
                height=height,
            )
        return StaticImageInfo(width, height)

    def _probe_image_size(self, path: str) -> Tuple[Optional[int], Optional[int]]:
        # Header-only read first, full decoder open when the header isn't understood
        try:
            width, height = imagesize.get(path)
            if width > 0 and height > 0:
                return width, height
        except Exception as e:  # noqa: BLE001
            logger.debug("imagesize failed for %s: %s", path, e)

        try:
            with pilimage.open(path) as image:
                return image.size
        except Exception as e:  # noqa: BLE001
            logger.debug("Could not read image size of %s: %s", path, e)
        return None, None
