"""Session-bus connection seam

TraySession talks to the bus only through BusConnection, so tests can swap
in a recording fake. SessionBusConnection is the real thing on top of
dbus-fast's asyncio MessageBus; every method must be called on the engine
worker thread (the thread running the loop the bus was connected on).
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Set

from dbus_fast import BusType, Message, MessageType
from dbus_fast.aio import MessageBus
from dbus_fast.service import ServiceInterface
from loguru import logger

from ..utils import BusRegistrationFailed
from .constants import DBUS_INTERFACE, DBUS_PATH, DBUS_SERVICE

OwnerChangedCallback = Callable[[str, str], None]
"""(old_owner, new_owner); an empty string means no owner"""


class BusConnection(ABC):
    """What a tray session needs from a bus connection"""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection

        Raises:
            BusRegistrationFailed: the bus is unreachable
        """

    @property
    @abstractmethod
    def unique_name(self) -> Optional[str]:
        """Unique connection name (":1.42"), None before connect()"""

    @property
    @abstractmethod
    def connected(self) -> bool:
        pass

    @abstractmethod
    def export(self, path: str, interface: ServiceInterface) -> None:
        pass

    @abstractmethod
    def unexport(self, path: str, interface: Optional[ServiceInterface] = None) -> None:
        pass

    @abstractmethod
    async def request_name(self, name: str) -> bool:
        """Try to own a well-known name; False when someone else has it"""

    @abstractmethod
    def call_async(self, destination: str, path: str, interface: str, member: str,
                   signature: str = "", body: Optional[List[Any]] = None) -> None:
        """Send a method call without waiting for the reply"""

    @abstractmethod
    async def watch_name_owner(self, name: str, callback: OwnerChangedCallback) -> None:
        """Invoke ``callback`` whenever ownership of ``name`` changes"""

    @abstractmethod
    def disconnect(self) -> None:
        pass


class SessionBusConnection(BusConnection):
    """BusConnection on the user's session bus"""

    def __init__(self, label: str = ""):
        self._label = label
        self._bus: Optional[MessageBus] = None
        self._in_flight: Set[asyncio.Future] = set()
        self._handlers: List[Callable[[Message], Any]] = []

    async def connect(self) -> None:
        try:
            self._bus = await MessageBus(bus_type=BusType.SESSION).connect()
        except Exception as e:
            self._bus = None
            raise BusRegistrationFailed(
                f"Could not connect to the session bus: {e}",
                context={"label": self._label},
                original_exception=e,
            )
        logger.debug(f"Session bus connected as {self._bus.unique_name} ({self._label})")

    @property
    def unique_name(self) -> Optional[str]:
        return self._bus.unique_name if self._bus is not None else None

    @property
    def connected(self) -> bool:
        return self._bus is not None and self._bus.connected

    def export(self, path: str, interface: ServiceInterface) -> None:
        self._require_bus().export(path, interface)

    def unexport(self, path: str, interface: Optional[ServiceInterface] = None) -> None:
        if self._bus is not None:
            self._bus.unexport(path, interface)

    async def request_name(self, name: str) -> bool:
        try:
            await self._require_bus().request_name(name)
            return True
        except Exception as e:
            logger.warning(f"Could not acquire bus name {name}: {e}")
            return False

    def call_async(self, destination: str, path: str, interface: str, member: str,
                   signature: str = "", body: Optional[List[Any]] = None) -> None:
        message = Message(
            destination=destination,
            path=path,
            interface=interface,
            member=member,
            signature=signature,
            body=body or [],
        )
        future = asyncio.ensure_future(self._require_bus().call(message))
        self._in_flight.add(future)
        future.add_done_callback(lambda f, m=member, d=destination: self._on_reply(f, m, d))

    def _on_reply(self, future: asyncio.Future, member: str, destination: str) -> None:
        self._in_flight.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning(f"{destination}.{member} failed: {error}")
            return
        reply = future.result()
        if reply is not None and reply.message_type == MessageType.ERROR:
            logger.warning(f"{destination}.{member} returned {reply.error_name}: {reply.body}")

    async def watch_name_owner(self, name: str, callback: OwnerChangedCallback) -> None:
        bus = self._require_bus()
        rule = (
            "type='signal',sender='org.freedesktop.DBus',interface='org.freedesktop.DBus',"
            f"member='NameOwnerChanged',arg0='{name}'"
        )
        reply = await bus.call(Message(
            destination=DBUS_SERVICE,
            path=DBUS_PATH,
            interface=DBUS_INTERFACE,
            member="AddMatch",
            signature="s",
            body=[rule],
        ))
        if reply is not None and reply.message_type == MessageType.ERROR:
            logger.warning(f"AddMatch for {name} failed: {reply.body}")

        def handler(message: Message) -> None:
            if (
                message.message_type == MessageType.SIGNAL
                and message.member == "NameOwnerChanged"
                and message.interface == DBUS_INTERFACE
                and message.body
                and message.body[0] == name
            ):
                _, old_owner, new_owner = message.body
                callback(old_owner, new_owner)

        bus.add_message_handler(handler)
        self._handlers.append(handler)

    def disconnect(self) -> None:
        bus, self._bus = self._bus, None
        if bus is None:
            return
        for handler in self._handlers:
            bus.remove_message_handler(handler)
        self._handlers.clear()
        for future in list(self._in_flight):
            future.cancel()
        bus.disconnect()
        logger.debug(f"Session bus disconnected ({self._label})")

    def _require_bus(self) -> MessageBus:
        if self._bus is None:
            raise BusRegistrationFailed(
                "Bus connection is not open", context={"label": self._label}
            )
        return self._bus


def session_bus_factory(label: str) -> BusConnection:
    """Default factory handed to TrayManager"""
    return SessionBusConnection(label)
