"""Menu tree tests (single-threaded, no engine)"""

import pytest

from snitray.menu import CheckResult, ItemHandle, Menu, MenuItemKind, MenuObserver
from snitray.utils import InvalidArgument, StaleHandle


class RecordingObserver(MenuObserver):
    def __init__(self):
        self.layouts = []
        self.items = []

    def on_layout_changed(self, parent_id):
        self.layouts.append(parent_id)

    def on_item_changed(self, item_id, properties):
        self.items.append((item_id, properties))


@pytest.fixture
def menu():
    return Menu()


@pytest.fixture
def observer(menu):
    obs = RecordingObserver()
    menu.add_observer(obs)
    return obs


class TestStructure:
    def test_root_handle(self, menu):
        assert menu.root == ItemHandle(menu.menu_id, 0)
        assert menu.root.is_root is True
        assert menu.root in menu

    def test_items_are_appended_in_order(self, menu, observer):
        quit_ = menu.add_action(menu.root, "Quit")
        menu.add_separator(menu.root)
        sub = menu.add_submenu(menu.root, "More")
        menu.add_action(sub, "About")

        kinds = [n.kind for n in menu.children(0)]
        assert kinds == [MenuItemKind.ACTION, MenuItemKind.SEPARATOR, MenuItemKind.SUBMENU]
        assert [n.text for n in menu.children(sub.item_id)] == ["About"]
        assert quit_.is_root is False
        assert observer.layouts == [0, 0, 0, sub.item_id]

    def test_item_ids_are_unique(self, menu):
        handles = [menu.add_action(menu.root, f"item {i}") for i in range(5)]

        assert len({h.item_id for h in handles}) == 5

    def test_cannot_add_under_an_action(self, menu):
        action = menu.add_action(menu.root, "Leaf")

        with pytest.raises(InvalidArgument):
            menu.add_action(action, "Child")

    def test_walk_is_depth_first(self, menu):
        a = menu.add_submenu(menu.root, "A")
        menu.add_action(a, "A1")
        menu.add_action(menu.root, "B")

        assert [n.text for n in menu.walk()] == ["", "A", "A1", "B"]


class TestRemoval:
    def test_remove_invalidates_subtree(self, menu, observer):
        sub = menu.add_submenu(menu.root, "More")
        child = menu.add_action(sub, "Deep")
        keep = menu.add_action(menu.root, "Keep")

        menu.remove(menu.root, sub)

        assert sub not in menu
        assert child not in menu
        assert keep in menu
        with pytest.raises(StaleHandle):
            menu.set_text(child, "x")
        assert observer.layouts[-1] == 0

    def test_remove_requires_direct_parent(self, menu):
        sub = menu.add_submenu(menu.root, "More")
        child = menu.add_action(sub, "Deep")

        with pytest.raises(InvalidArgument):
            menu.remove(menu.root, child)

    def test_root_cannot_be_removed(self, menu):
        with pytest.raises(InvalidArgument):
            menu.remove(menu.root, menu.root)

    def test_remove_twice_is_stale(self, menu):
        item = menu.add_action(menu.root, "Once")
        menu.remove(menu.root, item)

        with pytest.raises(StaleHandle):
            menu.remove(menu.root, item)

    def test_clear_returns_count(self, menu, observer):
        items = [menu.add_action(menu.root, str(i)) for i in range(3)]

        assert menu.clear(menu.root) == 3
        assert all(h not in menu for h in items)
        assert menu.clear(menu.root) == 0
        # clearing an empty menu is not a layout change
        assert observer.layouts.count(0) == 4

    def test_handles_from_other_menus_are_stale(self, menu):
        other = Menu()
        foreign = other.add_action(other.root, "Elsewhere")

        with pytest.raises(StaleHandle):
            menu.resolve(foreign)


class TestItemProperties:
    def test_set_text_is_idempotent(self, menu, observer):
        item = menu.add_action(menu.root, "Old")

        assert menu.set_text(item, "New") is True
        assert menu.set_text(item, "New") is False
        assert observer.items == [(item.item_id, ["label"])]

    def test_set_enabled(self, menu, observer):
        item = menu.add_action(menu.root, "Item")

        assert menu.set_enabled(item, False) is True
        assert menu.set_enabled(item, False) is False
        assert menu.resolve(item).enabled is False

    def test_set_checked_on_checkable(self, menu, observer):
        item = menu.add_action(menu.root, "Mute", checkable=True)

        assert menu.set_checked(item, True) == CheckResult.APPLIED
        assert menu.resolve(item).checked is True
        assert menu.set_checked(item, True) == CheckResult.APPLIED
        assert menu.set_checked(item, False) == CheckResult.APPLIED
        assert menu.resolve(item).checked is False
        assert observer.items == [
            (item.item_id, ["toggle-state"]),
            (item.item_id, ["toggle-state"]),
        ]

    def test_set_checked_on_plain_action(self, menu, observer):
        item = menu.add_action(menu.root, "Plain")

        assert menu.set_checked(item, True) == CheckResult.NOT_CHECKABLE
        assert menu.resolve(item).checked is False
        assert observer.items == []

    def test_checked_requires_checkable(self, menu):
        item = menu.add_action(menu.root, "Plain", checked=True)

        assert menu.resolve(item).checked is False

    def test_icon_name_and_data_are_exclusive(self, menu):
        item = menu.add_action(menu.root, "Icon")

        assert menu.set_icon(item, icon_data=b"\x89PNG") is True
        assert menu.set_icon(item, icon_name="document-open", icon_data=b"\x89PNG") is True

        node = menu.resolve(item)
        assert node.icon_name == "document-open"
        assert node.icon_data == b""
        assert menu.set_icon(item) is True
        assert menu.set_icon(item) is False


class TestTrigger:
    def test_trigger_runs_callback(self, menu):
        calls = []
        item = menu.add_action(menu.root, "Go", lambda: calls.append("go"))

        assert menu.trigger(item) is True
        assert calls == ["go"]

    def test_trigger_toggles_checkable_before_callback(self, menu):
        states = []
        item = menu.add_action(menu.root, "Mute", checkable=True)
        menu.resolve(item).callback = lambda: states.append(menu.resolve(item).checked)

        menu.trigger(item)
        menu.trigger(item)

        assert states == [True, False]

    def test_disabled_items_do_not_trigger(self, menu):
        calls = []
        item = menu.add_action(menu.root, "Off", lambda: calls.append(1), enabled=False)

        assert menu.trigger(item) is False
        assert calls == []

    def test_separators_and_submenus_do_not_trigger(self, menu):
        assert menu.trigger(menu.add_separator(menu.root)) is False
        assert menu.trigger(menu.add_submenu(menu.root, "Sub")) is False

    def test_callback_errors_are_contained(self, menu):
        def broken():
            raise RuntimeError("callback bug")

        item = menu.add_action(menu.root, "Broken", broken)

        assert menu.trigger(item) is True


class TestDestroy:
    def test_destroy_invalidates_everything(self, menu):
        item = menu.add_action(menu.root, "Gone")

        menu.destroy()

        assert menu.destroyed is True
        assert item not in menu
        with pytest.raises(StaleHandle):
            menu.resolve(menu.root)

    def test_destroy_listeners_run_once(self, menu):
        seen = []

        def listener(m):
            seen.append(m.menu_id)

        menu.add_destroy_listener(listener)
        menu.destroy()
        menu.destroy()

        assert seen == [menu.menu_id]

    def test_destroy_listener_does_not_keep_owner_alive(self, menu):
        import gc
        import weakref

        class Owner:
            def __init__(self):
                self.notified = False

            def on_destroyed(self, m):
                self.notified = True

        owner = Owner()
        menu.add_destroy_listener(owner.on_destroyed)
        owner_ref = weakref.ref(owner)
        del owner
        gc.collect()

        assert owner_ref() is None
        menu.destroy()

    def test_removed_destroy_listener_is_not_called(self, menu):
        seen = []

        def listener(m):
            seen.append(m)

        menu.add_destroy_listener(listener)
        menu.remove_destroy_listener(listener)
        menu.destroy()

        assert seen == []

    def test_popup_and_hide(self, menu):
        menu.popup(3, 4)
        assert menu.visible is True
        assert menu.popup_position == (3, 4)

        menu.hide()
        assert menu.visible is False
