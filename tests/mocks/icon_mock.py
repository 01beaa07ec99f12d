"""Icon sources with controllable sizes and failures"""
import threading
from typing import Iterable, List, Tuple

from PySide6.QtGui import QColor, QImage

from snitray.icons import IconSource


def solid_image(width: int, height: int, color: QColor = None) -> QImage:
    image = QImage(width, height, QImage.Format.Format_ARGB32)
    image.fill(color if color is not None else QColor(0x11, 0x22, 0x33))
    return image


class FakeIcon(IconSource):
    """Renders solid squares; sizes listed in ``failing`` render as null images"""

    def __init__(self, sizes: Iterable[Tuple[int, int]] = (),
                 failing: Iterable[int] = (), fail_all: bool = False,
                 key: str = "fake", color: QColor = None, gui_thread_only: bool = False):
        self._sizes = list(sizes)
        self._failing = set(failing)
        self._fail_all = fail_all
        self._key = key
        self._color = color
        self.gui_thread_only = gui_thread_only
        self.rendered: List[Tuple[int, int]] = []
        self.render_threads: List[int] = []

    def available_sizes(self):
        return list(self._sizes)

    def render(self, width, height):
        self.rendered.append((width, height))
        self.render_threads.append(threading.get_ident())
        if self._fail_all or width in self._failing:
            return QImage()
        return solid_image(width, height, self._color)

    def cache_key(self):
        return self._key
