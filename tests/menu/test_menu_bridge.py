"""Thread-safe menu API tests (through a real engine)"""

import threading

import pytest

from snitray.menu import CheckResult, MenuBridge, resolve_menu_icon
from snitray.utils import InvalidArgument, StaleHandle

from mocks import solid_image


@pytest.fixture
def bridge(engine):
    return MenuBridge(engine)


@pytest.fixture
def root(bridge):
    return bridge.create_menu()


def _node(engine, bridge, handle):
    menu = bridge.lookup(handle)
    return engine.call(lambda: menu.resolve(handle))


class TestMenuLifecycle:
    def test_create_returns_root_handle(self, bridge, root):
        assert root.is_root is True
        assert bridge.is_valid(root) is True
        assert bridge.menu_count == 1

    def test_destroy_invalidates_handles(self, bridge, root):
        item = bridge.add_action(root, "Quit")

        bridge.destroy_menu(root)

        assert bridge.is_valid(root) is False
        assert bridge.is_valid(item) is False
        with pytest.raises(StaleHandle):
            bridge.set_text(item, "Exit")
        with pytest.raises(StaleHandle):
            bridge.destroy_menu(root)

    def test_missing_handle_is_invalid_argument(self, bridge):
        with pytest.raises(InvalidArgument):
            bridge.add_separator(None)

    def test_destroy_all(self, bridge):
        bridge.create_menu()
        bridge.create_menu()

        bridge.destroy_all()

        assert bridge.menu_count == 0


class TestItems:
    def test_item_variants(self, engine, bridge, root):
        plain = bridge.add_action(root, "Open")
        checked = bridge.add_checkable_action(root, "Mute", checked=True)
        disabled = bridge.add_disabled_action(root, "Unavailable")

        assert _node(engine, bridge, plain).enabled is True
        assert _node(engine, bridge, checked).checked is True
        assert _node(engine, bridge, disabled).enabled is False

    def test_empty_text_is_rejected(self, bridge, root):
        with pytest.raises(InvalidArgument):
            bridge.add_action(root, "")
        with pytest.raises(InvalidArgument):
            bridge.add_submenu(root, "")

    def test_set_checked_results(self, bridge, root):
        toggle = bridge.add_checkable_action(root, "Mute")
        plain = bridge.add_action(root, "Plain")

        assert bridge.set_checked(toggle, True) == CheckResult.APPLIED
        assert bridge.set_checked(plain, True) == CheckResult.NOT_CHECKABLE

    def test_remove_makes_descendants_stale(self, bridge, root):
        sub = bridge.add_submenu(root, "More")
        child = bridge.add_action(sub, "Deep")

        bridge.remove(root, sub)

        with pytest.raises(StaleHandle):
            bridge.set_enabled(child, False)
        assert bridge.is_valid(root) is True

    def test_clear(self, bridge, root):
        items = [bridge.add_action(root, f"Item {i}") for i in range(4)]

        assert bridge.clear(root) == 4
        assert not any(bridge.is_valid(h) for h in items)

    def test_trigger_runs_on_worker(self, engine, bridge, root):
        ran_on = []
        item = bridge.add_action(root, "Go", lambda: ran_on.append(threading.get_ident()))

        assert bridge.trigger(item) is True
        assert ran_on == [engine.call(threading.get_ident)]

    def test_concurrent_mutations_are_serialized(self, bridge, root):
        handles = []
        lock = threading.Lock()

        def add(i):
            handle = bridge.add_action(root, f"Item {i}")
            with lock:
                handles.append(handle)

        threads = [threading.Thread(target=add, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len({h.item_id for h in handles}) == 20
        assert bridge.clear(root) == 20


class TestIcons:
    def test_theme_name_without_application(self, engine, bridge, root):
        item = bridge.add_action(root, "Open")

        assert bridge.set_icon(item, "document-open") is True
        assert _node(engine, bridge, item).icon_name == "document-open"

    def test_image_file_becomes_png_data(self, engine, bridge, root, tmp_path):
        path = tmp_path / "item.png"
        assert solid_image(16, 16).save(str(path), "PNG")
        item = bridge.add_action(root, "Open")

        assert bridge.set_icon(item, str(path)) is True

        node = _node(engine, bridge, item)
        assert node.icon_name == ""
        assert node.icon_data.startswith(b"\x89PNG")

    def test_unresolvable_icon_clears(self, engine, bridge, root, tmp_path):
        item = bridge.add_action(root, "Open")
        bridge.set_icon(item, "document-open")

        assert bridge.set_icon(item, str(tmp_path / "missing" / "icon.png")) is False

        node = _node(engine, bridge, item)
        assert node.icon_name == ""
        assert node.icon_data == b""

    def test_resolve_menu_icon(self, tmp_path):
        assert resolve_menu_icon("edit-copy") == ("edit-copy", b"")
        assert resolve_menu_icon(str(tmp_path / "nope.png")) is None

    def test_icon_is_resolved_on_the_calling_thread(self, engine, bridge, root, monkeypatch):
        import snitray.menu.bridge as bridge_module

        threads = []

        def recording_resolve(value):
            threads.append(threading.get_ident())
            return value, b""

        monkeypatch.setattr(bridge_module, "resolve_menu_icon", recording_resolve)
        item = bridge.add_action(root, "Open")

        assert bridge.set_icon(item, "document-open") is True
        assert threads == [threading.get_ident()]
        assert threads[0] != engine.call(threading.get_ident)
