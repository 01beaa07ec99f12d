"""TrayManager Tests

Session reference counting, the delayed engine teardown and the menu
passthroughs.
"""

import threading
import time

import pytest

from snitray.core.services.config import ConfigKeys
from snitray.core.tray_manager import TrayManager
from snitray.tray import SessionState
from snitray.utils import BusRegistrationFailed, InvalidArgument

from mocks import FakeBusFactory


class TestSessionCounting:
    """The engine lives exactly as long as some session needs it"""

    def test_create_tray_starts_engine(self, manager):
        tray = manager.create_tray("counting")

        assert manager.engine.is_running is True
        assert manager.live_sessions == 1
        assert tray.state == SessionState.REGISTERED

    def test_last_destroy_shuts_down_after_grace(self, manager, wait_until):
        first = manager.create_tray("first")
        second = manager.create_tray("second")

        assert manager.destroy_tray(first) is True
        time.sleep(0.15)
        assert manager.shutdown_count == 0
        assert manager.engine.is_running is True

        assert manager.destroy_tray(second) is True
        assert wait_until(lambda: manager.shutdown_count == 1)
        assert manager.engine.is_running is False
        assert second.state == SessionState.CLOSED

    def test_create_within_grace_cancels_shutdown(self, config, bus_factory):
        config.set_setting(ConfigKeys.ENGINE_SHUTDOWN_GRACE_MS, 300)
        mgr = TrayManager(config=config, bus_factory=bus_factory)
        try:
            mgr.destroy_tray(mgr.create_tray("short-lived"))
            replacement = mgr.create_tray("replacement")
            time.sleep(0.5)

            assert mgr.shutdown_count == 0
            assert mgr.engine.is_running is True
            assert replacement.state == SessionState.REGISTERED
        finally:
            mgr.shutdown()

    def test_idle_teardown_skips_when_a_session_is_live(self, manager):
        tray = manager.create_tray("still-here")

        manager._shutdown_if_idle()

        assert manager.shutdown_count == 0
        assert manager.engine.is_running is True
        assert tray.state == SessionState.REGISTERED

    def test_create_during_idle_teardown_gets_a_live_session(self, config, bus_factory):
        config.set_setting(ConfigKeys.ENGINE_SHUTDOWN_GRACE_MS, 5000)
        mgr = TrayManager(config=config, bus_factory=bus_factory)
        created = []

        def create_second():
            created.append(mgr.create_tray("second"))

        creator = threading.Thread(target=create_second)
        destroy_all = mgr.menus.destroy_all

        def destroy_all_then_race():
            # create_tray arrives while the teardown is under way
            creator.start()
            time.sleep(0.1)
            destroy_all()

        try:
            mgr.destroy_tray(mgr.create_tray("first"))
            mgr.menus.destroy_all = destroy_all_then_race

            mgr._shutdown_if_idle()
            creator.join(timeout=10)

            assert mgr.shutdown_count == 1
            assert len(created) == 1
            assert created[0].state == SessionState.REGISTERED
            assert mgr.live_sessions == 1
            assert mgr.engine.is_running is True
        finally:
            mgr.menus.destroy_all = destroy_all
            mgr.shutdown()

    def test_concurrent_shutdown_runs_once(self, manager):
        manager.create_tray("raced")
        results = []
        lock = threading.Lock()

        def shut():
            outcome = manager.shutdown()
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=shut) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert results.count(True) == 1
        assert manager.shutdown_count == 1

    def test_create_after_shutdown_restarts_engine(self, manager):
        manager.create_tray("before")
        manager.shutdown()
        assert manager.engine.is_running is False

        tray = manager.create_tray("after")

        assert manager.engine.is_running is True
        assert tray.state == SessionState.REGISTERED

    def test_destroy_unknown_session_returns_false(self, manager, engine, bus):
        from snitray.tray import TraySession

        foreign = TraySession.create("foreign", engine, bus)
        manager.create_tray("owned")

        assert manager.destroy_tray(foreign) is False
        assert manager.live_sessions == 1


class TestCreateFailures:
    def test_empty_id_is_rejected(self, manager):
        with pytest.raises(InvalidArgument):
            manager.create_tray("")

        assert manager.live_sessions == 0

    def test_bus_failure_releases_reference(self, config, wait_until):
        mgr = TrayManager(config=config, bus_factory=FakeBusFactory(fail_connect=True))

        with pytest.raises(BusRegistrationFailed):
            mgr.create_tray("unreachable")

        assert mgr.live_sessions == 0
        assert wait_until(lambda: mgr.shutdown_count == 1)
        mgr.engine.stop()


class TestMenusThroughManager:
    def test_attach_menu_built_through_manager(self, manager, bus_factory):
        tray = manager.create_tray("with-menu")
        menu = manager.create_menu()
        manager.add_action(menu, "Open")
        manager.add_separator(menu)
        manager.add_action(menu, "Quit")

        assert manager.set_context_menu(tray, menu) is True
        assert tray.snapshot().menu_path == "/MenuBar"
        assert "/MenuBar" in bus_factory.last.exports

    def test_attach_with_item_handle_attaches_whole_menu(self, manager):
        tray = manager.create_tray("by-item")
        menu = manager.create_menu()
        sub = manager.add_submenu(menu, "More")

        manager.set_context_menu(tray, sub)

        assert manager.engine.call(lambda: tray.attached_menu.menu_id) == menu.menu_id

    def test_shutdown_destroys_menus(self, manager):
        manager.create_tray("menus")
        manager.create_menu()
        manager.create_menu()

        manager.shutdown()
        manager.engine.ensure_started()

        assert manager.menus.menu_count == 0
