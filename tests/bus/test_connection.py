"""SessionBusConnection tests against a stand-in MessageBus

Covers the match rule sent for an owner watch and the parsing of the
NameOwnerChanged signals that come back.
"""

import asyncio

import pytest
from dbus_fast import Message, MessageType

from snitray.bus.connection import SessionBusConnection
from snitray.bus.constants import DBUS_INTERFACE, DBUS_PATH, WATCHER_SERVICE


class RecordingMessageBus:
    """Just the MessageBus surface SessionBusConnection uses for watches"""

    def __init__(self):
        self.sent = []
        self.handlers = []
        self.disconnected = False

    async def call(self, message):
        self.sent.append(message)
        return None

    def add_message_handler(self, handler):
        self.handlers.append(handler)

    def remove_message_handler(self, handler):
        self.handlers.remove(handler)

    def disconnect(self):
        self.disconnected = True

    def deliver(self, message):
        for handler in list(self.handlers):
            handler(message)


def _owner_changed(name, old_owner, new_owner, member="NameOwnerChanged",
                   interface=DBUS_INTERFACE):
    return Message(
        message_type=MessageType.SIGNAL,
        path=DBUS_PATH,
        interface=interface,
        member=member,
        signature="sss",
        body=[name, old_owner, new_owner],
    )


@pytest.fixture
def message_bus():
    return RecordingMessageBus()


@pytest.fixture
def watched(message_bus):
    """Connection watching the tray watcher name; yields the received owner changes"""
    connection = SessionBusConnection("watch-test")
    connection._bus = message_bus
    received = []
    asyncio.run(connection.watch_name_owner(
        WATCHER_SERVICE, lambda old, new: received.append((old, new))
    ))
    yield received
    connection.disconnect()


class TestWatchNameOwner:
    def test_match_rule_is_registered(self, watched, message_bus):
        assert len(message_bus.sent) == 1
        add_match = message_bus.sent[0]
        assert add_match.member == "AddMatch"
        assert "member='NameOwnerChanged'" in add_match.body[0]
        assert f"arg0='{WATCHER_SERVICE}'" in add_match.body[0]

    def test_owner_change_reaches_callback(self, watched, message_bus):
        message_bus.deliver(_owner_changed(WATCHER_SERVICE, "", ":1.7"))
        message_bus.deliver(_owner_changed(WATCHER_SERVICE, ":1.7", ""))

        assert watched == [("", ":1.7"), (":1.7", "")]

    def test_other_names_are_ignored(self, watched, message_bus):
        message_bus.deliver(_owner_changed("org.example.Other", "", ":1.8"))

        assert watched == []

    def test_other_signals_are_ignored(self, watched, message_bus):
        message_bus.deliver(_owner_changed(WATCHER_SERVICE, "", ":1.9", member="NameLost"))
        message_bus.deliver(_owner_changed(WATCHER_SERVICE, "", ":1.9",
                                           interface="org.example.Iface"))

        assert watched == []

    def test_disconnect_removes_handlers(self, message_bus):
        connection = SessionBusConnection("watch-test")
        connection._bus = message_bus
        asyncio.run(connection.watch_name_owner(WATCHER_SERVICE, lambda old, new: None))

        connection.disconnect()

        assert message_bus.handlers == []
        assert message_bus.disconnected is True
        assert connection.connected is False
