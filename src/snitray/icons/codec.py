"""Icon pixmap codec

Turns an IconSource into the StatusNotifierItem pixel list: one
(width, height, bytes) entry per resolution, 32-bit ARGB, and every pixel
word big-endian regardless of the host byte order.
"""

import sys
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import numpy as np
from PySide6.QtCore import QBuffer, QIODevice, Qt
from PySide6.QtGui import QImage

from ..utils import RenderFailed, app_logger, logger
from .sources import IconSource

FALLBACK_SIZES = (16, 22, 24, 32, 48)
LAST_RESORT_SIZE = 32


@dataclass(frozen=True)
class IconPixmap:
    """One wire-format icon entry"""

    width: int
    height: int
    data: bytes

    def to_wire(self) -> List[Any]:
        """Value for an ``(iiay)`` struct"""
        return [self.width, self.height, self.data]


def image_to_pixmap(image: QImage) -> IconPixmap:
    """Convert a rendered image to a wire entry (ARGB32, big-endian words)"""
    if image.format() != QImage.Format.Format_ARGB32:
        image = image.convertToFormat(QImage.Format.Format_ARGB32)

    width, height = image.width(), image.height()
    words = np.frombuffer(bytes(image.constBits()), dtype=np.uint32)
    # ARGB32 scanlines are always 4-byte aligned, so rows are contiguous
    words = words[: width * height]
    if sys.byteorder == "little":
        words = words.byteswap()

    return IconPixmap(width, height, words.tobytes())


def image_to_png(image: QImage) -> bytes:
    """PNG bytes of ``image`` (dbusmenu ``icon-data``); empty for a null image"""
    if image.isNull():
        return b""
    buffer = QBuffer()
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    data = bytes(buffer.data())
    buffer.close()
    return data


def _render(icon: IconSource, width: int, height: int) -> IconPixmap:
    image = icon.render(width, height)
    if image is None or image.isNull():
        raise RenderFailed(
            f"Icon could not be rendered at {width}x{height}",
            size=(width, height),
            context={"icon": icon.cache_key()},
        )
    return image_to_pixmap(image)


def _transparent(size: int) -> IconPixmap:
    image = QImage(size, size, QImage.Format.Format_ARGB32)
    image.fill(Qt.GlobalColor.transparent)
    return image_to_pixmap(image)


def icon_to_pixmap_list(icon: IconSource,
                        fallback_sizes: Optional[Sequence[int]] = None,
                        last_resort_size: Optional[int] = None) -> List[IconPixmap]:
    """Encode ``icon`` at every size it offers

    Icons without native sizes are rendered at ``fallback_sizes``. Sizes
    that fail to render are skipped. The result is never empty: when
    nothing rendered, one ``last_resort_size`` square entry is appended
    (fully transparent if even that render fails).

    Returns:
        Entries in enumeration order (not sorted by size)
    """
    start_time = time.perf_counter()
    fallback_sizes = FALLBACK_SIZES if fallback_sizes is None else fallback_sizes
    last_resort_size = LAST_RESORT_SIZE if last_resort_size is None else last_resort_size

    sizes = list(icon.available_sizes()) or [(s, s) for s in fallback_sizes]

    pixmaps: List[IconPixmap] = []
    for width, height in sizes:
        try:
            pixmaps.append(_render(icon, width, height))
        except RenderFailed as e:
            app_logger.log_icon_event("Skipped resolution", e.context)

    if not pixmaps:
        try:
            pixmaps.append(_render(icon, last_resort_size, last_resort_size))
        except RenderFailed:
            app_logger.log_icon_event(
                "Last-resort render failed, using a transparent bitmap",
                {"icon": icon.cache_key(), "size": last_resort_size},
            )
            pixmaps.append(_transparent(last_resort_size))

    logger.performance(
        "icon_to_pixmap_list",
        time.perf_counter() - start_time,
        {"requested": len(sizes), "encoded": len(pixmaps)},
    )
    return pixmaps
