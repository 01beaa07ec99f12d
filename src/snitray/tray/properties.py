"""Tray item property values"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from ..icons import IconPixmap
from ..utils import InvalidArgument


class TrayStatus(Enum):
    """Item status as seen by the host"""

    PASSIVE = "Passive"
    ACTIVE = "Active"
    NEEDS_ATTENTION = "NeedsAttention"

    @classmethod
    def parse(cls, value: Any) -> "TrayStatus":
        """TrayStatus from a member or its wire string

        Raises:
            InvalidArgument: empty or unknown value
        """
        if isinstance(value, cls):
            return value
        if not value:
            raise InvalidArgument("Status must be a non-empty string", field="status")
        try:
            return cls(value)
        except ValueError:
            raise InvalidArgument(
                f"Unknown status {value!r}",
                field="status",
                context={"allowed": [s.value for s in cls]},
            )


class Orientation(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @classmethod
    def from_wire(cls, value: str) -> "Orientation":
        """Case-insensitive; anything but "horizontal" is vertical"""
        if (value or "").lower() == cls.HORIZONTAL.value:
            return cls.HORIZONTAL
        return cls.VERTICAL


class PropertyGroup(Enum):
    """Independent change-notification channels"""

    TITLE = "title"
    STATUS = "status"
    CATEGORY = "category"
    ICON = "icon"
    OVERLAY_ICON = "overlay_icon"
    ATTENTION_ICON = "attention_icon"
    TOOLTIP = "tooltip"
    MENU = "menu"


@dataclass(frozen=True)
class IconSpec:
    """An icon by theme name or by pixmaps, never both"""

    name: str = ""
    pixmaps: Tuple[IconPixmap, ...] = ()
    cache_key: Optional[str] = None

    @classmethod
    def by_name(cls, name: str) -> "IconSpec":
        return cls(name=name or "")

    @classmethod
    def by_pixmaps(cls, pixmaps: Sequence[IconPixmap], cache_key: str) -> "IconSpec":
        return cls(pixmaps=tuple(pixmaps), cache_key=cache_key)

    @property
    def is_empty(self) -> bool:
        return not self.name and not self.pixmaps

    def wire_pixmaps(self) -> List[List[Any]]:
        return [p.to_wire() for p in self.pixmaps]


@dataclass(frozen=True)
class ToolTip:
    title: str = ""
    subtitle: str = ""
    icon: IconSpec = field(default_factory=IconSpec)

    def to_wire(self) -> List[Any]:
        """Value for ``(sa(iiay)ss)``"""
        return [self.icon.name, self.icon.wire_pixmaps(), self.title, self.subtitle]


@dataclass
class TrayProperties:
    """Everything a tray item publishes"""

    id: str
    title: str = ""
    status: TrayStatus = TrayStatus.ACTIVE
    category: str = "ApplicationStatus"
    icon: IconSpec = field(default_factory=IconSpec)
    overlay_icon: IconSpec = field(default_factory=IconSpec)
    attention_icon: IconSpec = field(default_factory=IconSpec)
    tooltip: ToolTip = field(default_factory=ToolTip)
    menu_path: str = "/"
