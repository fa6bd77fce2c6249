"""
Integration tests for the WindowKeeper orchestrator (fake host, no browser).

These drive the full path: host event → queue → dispatch → engine → storage.
"""

from __future__ import annotations

import json
import os
import tempfile

import pytest

from windowkeeper.core.events import TabRemoved, TabUpdated, WindowCreated, WindowRemoved
from windowkeeper.core.keeper import WindowKeeper
from windowkeeper.core.types import SavedWindow, TabRecord
from windowkeeper.store.registry import NAMES_KEY, SNAPSHOTS_KEY


def make_keeper(host, storage, indicator=None) -> WindowKeeper:
    return WindowKeeper(host, storage=storage, indicator=indicator)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_reconciles_saved_windows(self, host, storage):
        await storage.write({
            NAMES_KEY: ["Work"],
            SNAPSHOTS_KEY: {"Work": SavedWindow(name="Work", tabs=[TabRecord("a.com")]).to_dict()},
        })
        window = host.add_window(["a.com"])
        keeper = make_keeper(host, storage)
        await keeper.start()
        try:
            assert keeper.state.live_index == {window.id: "Work"}
        finally:
            await keeper.stop()

    @pytest.mark.asyncio
    async def test_post_before_start_raises(self, host, storage):
        keeper = make_keeper(host, storage)
        with pytest.raises(RuntimeError):
            keeper.post(WindowRemoved(1))

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, host, storage):
        keeper = make_keeper(host, storage)
        await keeper.start()
        await keeper.stop()
        await keeper.stop()

    @pytest.mark.asyncio
    async def test_events_after_stop_are_dropped(self, host, storage):
        keeper = make_keeper(host, storage)
        await keeper.start()
        await keeper.stop()
        host.emit(TabUpdated("t1", 1))
        assert keeper._events.qsize() == 0

    @pytest.mark.asyncio
    async def test_restart_subscribes_once(self, host, storage):
        keeper = make_keeper(host, storage)
        await keeper.start()
        await keeper.stop()
        await keeper.start()
        try:
            assert len(host._callbacks) == 1
            window = host.add_window(["a.com"])
            await keeper.save_window(window, "Work")
            host.close_window(window.id)
            host.emit(WindowRemoved(window.id))
            assert keeper._events.qsize() == 1
            await keeper.drain()
            assert "Work" in keeper.state.closed
        finally:
            await keeper.stop()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_the_pump(self, host, storage):
        keeper = make_keeper(host, storage)
        await keeper.start()
        try:
            window = host.add_window(["a.com"])
            await keeper.save_window(window, "Work")
            keeper.post(object())  # no handler: logged and skipped
            host.close_window(window.id)
            host.emit(WindowRemoved(window.id))
            await keeper.drain()
            assert "Work" in keeper.state.closed
        finally:
            await keeper.stop()

    @pytest.mark.asyncio
    async def test_default_storage_is_a_json_file(self, host):
        path = os.path.join(tempfile.mkdtemp(), "state.json")
        keeper = WindowKeeper(host, state_path=path)
        await keeper.start()
        try:
            window = host.add_window(["a.com"])
            await keeper.save_window(window, "Work")
        finally:
            await keeper.stop()
        with open(path, encoding="utf-8") as f:
            assert json.load(f)[NAMES_KEY] == ["Work"]


class TestEventFlow:
    @pytest.mark.asyncio
    async def test_save_close_reopen_scenario(self, host, storage, indicator):
        keeper = make_keeper(host, storage, indicator)
        await keeper.start()
        try:
            w1 = host.add_window(["a.com", "b.com"])
            await keeper.save_window(w1, "Work")
            assert keeper.state.live_index == {w1.id: "Work"}

            # Closing the window removes its tabs first, flagged as window-closing.
            host.close_window(w1.id)
            for tab in w1.tabs:
                host.emit(TabRemoved(tab.id, w1.id, is_window_closing=True))
            host.emit(WindowRemoved(w1.id))
            await keeper.drain()
            assert keeper.state.live_index == {}
            assert keeper.state.closed["Work"].urls == ["a.com", "b.com"]

            # A new window whose tabs start with the saved ones is recognised.
            w2 = host.add_window(["a.com", "b.com", "c.com"])
            host.emit(WindowCreated(w2))
            for tab in w2.tabs:
                host.emit(TabUpdated(tab.id, w2.id))
            await keeper.drain()
            assert keeper.state.live_index == {w2.id: "Work"}
            assert keeper.state.snapshots["Work"].urls == ["a.com", "b.com", "c.com"]
            assert indicator.tab_text[w2.tabs[0].id] == "3"
        finally:
            await keeper.stop()

    @pytest.mark.asyncio
    async def test_events_during_startup_are_handled_after_it(self, host, storage):
        await storage.write({
            NAMES_KEY: ["Work"],
            SNAPSHOTS_KEY: {"Work": SavedWindow(name="Work", tabs=[TabRecord("a.com")]).to_dict()},
        })
        window = host.add_window(["a.com"])
        keeper = make_keeper(host, storage)
        original = host.get_all_windows

        async def enumerate_then_close():
            windows = await original()
            host.close_window(window.id)
            host.emit(WindowRemoved(window.id))
            return windows

        host.get_all_windows = enumerate_then_close
        await keeper.start()
        try:
            assert keeper.state.live_index == {window.id: "Work"}
            await keeper.drain()
            assert keeper.state.live_index == {}
            assert "Work" in keeper.state.closed
        finally:
            await keeper.stop()


class TestOperations:
    @pytest.mark.asyncio
    async def test_save_current_window(self, host, storage):
        window = host.add_window(["a.com"], focused=True)
        keeper = make_keeper(host, storage)
        assert (await keeper.save_current_window("Work")).id == window.id
        assert keeper.state.live_index == {window.id: "Work"}

    @pytest.mark.asyncio
    async def test_save_current_window_without_focus(self, host, storage):
        host.add_window(["a.com"])
        keeper = make_keeper(host, storage)
        assert await keeper.save_current_window("Work") is None
        assert keeper.state.names == []

    @pytest.mark.asyncio
    async def test_delete_undo_open_round(self, host, storage):
        keeper = make_keeper(host, storage)
        window = host.add_window(["a.com"])
        await keeper.save_window(window, "Work")
        assert await keeper.delete_saved_window("Work")
        assert await keeper.undo_delete_saved_window("Work")
        result = await keeper.open_window("Work")
        assert keeper.state.live_index == {result.window.id: "Work"}
        assert [e.name for e in keeper.list_saved_windows()] == ["Work"]
        assert await keeper.focus_saved_window("Work") is True
