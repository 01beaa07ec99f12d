"""Icon sources and the wire pixmap codec"""

from .codec import (
    FALLBACK_SIZES,
    LAST_RESORT_SIZE,
    IconPixmap,
    icon_to_pixmap_list,
    image_to_pixmap,
    image_to_png,
)
from .sources import FileIcon, FrameIcon, IconSource, ImageIcon, QtIcon, icon_from_path

__all__ = [
    "FALLBACK_SIZES",
    "LAST_RESORT_SIZE",
    "IconPixmap",
    "icon_to_pixmap_list",
    "image_to_pixmap",
    "image_to_png",
    "IconSource",
    "FrameIcon",
    "ImageIcon",
    "FileIcon",
    "QtIcon",
    "icon_from_path",
]
