"""Mock objects"""
from .bus_mock import FakeBusConnection, FakeBusFactory
from .icon_mock import FakeIcon, solid_image

__all__ = [
    'FakeBusConnection',
    'FakeBusFactory',
    'FakeIcon',
    'solid_image',
]
