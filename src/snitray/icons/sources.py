"""Icon sources - anything that can be rendered at a requested size

The codec never talks to QIcon/QImage directly; it asks an IconSource for
its native sizes and for a render at each one. A failed render is a null
QImage, never an exception.

Sources flagged ``gui_thread_only`` paint through QPixmap, which Qt only
allows on the GUI thread. Sessions call ``prerender()`` on such sources
before marshaling, so the engine worker only ever scales QImages.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from PySide6.QtCore import QSize, Qt
from PySide6.QtGui import QGuiApplication, QIcon, QImage, QImageReader

from ..utils import app_logger

Size = Tuple[int, int]


class IconSource(ABC):
    """Renderable icon"""

    gui_thread_only = False

    @abstractmethod
    def available_sizes(self) -> List[Size]:
        """Native sizes in preference order; empty when unknown"""

    @abstractmethod
    def render(self, width: int, height: int) -> QImage:
        """Render at the given size; a null QImage on failure"""

    @abstractmethod
    def cache_key(self) -> str:
        """Identity used to suppress redundant icon updates"""

    def prerender(self, fallback_sizes: Iterable[int], last_resort_size: int) -> "FrameIcon":
        """Render every size the codec will ask for, on the calling thread

        Mirrors the codec's size choice: native sizes, else ``fallback_sizes``,
        and ``last_resort_size`` only when nothing else rendered.
        """
        sizes = list(self.available_sizes()) or [(s, s) for s in fallback_sizes]
        frames = [frame for frame in (self.render(w, h) for w, h in sizes)
                  if not frame.isNull()]
        if not frames:
            frame = self.render(last_resort_size, last_resort_size)
            if not frame.isNull():
                frames.append(frame)
        return FrameIcon(frames, self.cache_key())


def _scaled(image: QImage, width: int, height: int) -> QImage:
    if image.isNull():
        return QImage()
    if image.width() == width and image.height() == height:
        return image
    return image.scaled(
        width, height, Qt.AspectRatioMode.IgnoreAspectRatio,
        Qt.TransformationMode.SmoothTransformation,
    )


class FrameIcon(IconSource):
    """A fixed set of images; exact sizes are served as-is, others scaled from the largest"""

    def __init__(self, frames: Sequence[QImage], key: str):
        self._frames = [QImage(frame) for frame in frames if not frame.isNull()]
        self._key = key

    def available_sizes(self) -> List[Size]:
        sizes: List[Size] = []
        for frame in self._frames:
            size = (frame.width(), frame.height())
            if size not in sizes:
                sizes.append(size)
        return sizes

    def render(self, width: int, height: int) -> QImage:
        if not self._frames:
            return QImage()
        for frame in self._frames:
            if frame.width() == width and frame.height() == height:
                return frame
        largest = max(self._frames, key=lambda f: f.width() * f.height())
        return _scaled(largest, width, height)

    def cache_key(self) -> str:
        return self._key


class ImageIcon(FrameIcon):
    """A single in-memory QImage, scaled on demand"""

    def __init__(self, image: QImage):
        super().__init__([image], f"image:{image.cacheKey()}")


class FileIcon(FrameIcon):
    """An image file; multi-image formats (ico, icns, tiff) expose every frame"""

    def __init__(self, path: Union[str, Path]):
        self._path = str(path)
        super().__init__(self._read_frames(), "")

    def _read_frames(self) -> List[QImage]:
        frames: List[QImage] = []
        reader = QImageReader(self._path)
        for index in range(max(reader.imageCount(), 1)):
            if index and not reader.jumpToImage(index):
                break
            frame = reader.read()
            if frame.isNull():
                if index == 0:
                    app_logger.log_icon_event(
                        "Image file unreadable",
                        {"path": self._path, "reason": reader.errorString()},
                    )
                break
            frames.append(frame)
        return frames

    @property
    def path(self) -> str:
        return self._path

    @property
    def loaded(self) -> bool:
        return bool(self._frames)

    def cache_key(self) -> str:
        try:
            stamp = os.stat(self._path).st_mtime_ns
        except OSError:
            stamp = "missing"
        return f"file:{self._path}:{stamp}"


class QtIcon(IconSource):
    """A QIcon; rendering needs a running QGuiApplication and the GUI thread"""

    gui_thread_only = True

    def __init__(self, icon: QIcon):
        self._icon = QIcon(icon)

    def available_sizes(self) -> List[Size]:
        return [(s.width(), s.height()) for s in self._icon.availableSizes()]

    def render(self, width: int, height: int) -> QImage:
        if QGuiApplication.instance() is None or self._icon.isNull():
            return QImage()
        pixmap = self._icon.pixmap(QSize(width, height))
        if pixmap.isNull():
            return QImage()
        return pixmap.toImage()

    def cache_key(self) -> str:
        return f"qicon:{self._icon.cacheKey()}"


def icon_from_path(path: Union[str, Path]) -> Optional[FileIcon]:
    """FileIcon for ``path``, or None when the file is missing or unreadable"""
    if not os.path.isfile(str(path)):
        return None
    icon = FileIcon(path)
    return icon if icon.loaded else None
