"""
Tests for reversible deletions with a grace window.
"""
import asyncio

import pytest

from tensionchart.constants import MESSAGE_DELETE_FAILED
from tensionchart.exceptions import NotFoundError
from tensionchart.managers.deletion_scheduler import DeletionScheduler
from tensionchart.managers.mutation_synchronizer import LiveStore
from tensionchart.models.base import ItemTable, Vision
from tensionchart.models.store import ItemRef

GRACE = 0.05


def make_scheduler(store, persistence, grace=GRACE):
    live = LiveStore(store)
    return live, DeletionScheduler(live, persistence, grace_seconds=grace)


def visions(builder):
    return builder.vision("v0", sort_order=0).vision("v1", sort_order=1).vision("v2", sort_order=2).build()


class TestUndo:
    """Test undoing inside the grace window."""

    def test_undo_restores_original_position(self, builder, persistence):
        """Test an undo before the window closes puts the item back exactly."""
        live, scheduler = make_scheduler(visions(builder), persistence)
        ref = ItemRef(ItemTable.VISIONS, "v1")

        async def scenario():
            scheduler.schedule_delete(ref)
            hidden = [v.id for v in live.current.visions]
            await asyncio.sleep(GRACE / 3)
            undone = scheduler.undo(ref)
            await asyncio.sleep(GRACE * 2)
            return hidden, undone

        hidden, undone = asyncio.run(scenario())

        assert hidden == ["v0", "v2"]
        assert undone
        assert [v.id for v in live.current.visions] == ["v0", "v1", "v2"]
        assert live.current.get_vision("v1").sort_order == 1
        assert persistence.calls_of("delete_item") == []

    def test_handle_cancel(self, builder, persistence):
        live, scheduler = make_scheduler(visions(builder), persistence)

        async def scenario():
            handle = scheduler.schedule_delete(ItemRef(ItemTable.VISIONS, "v0"))
            assert handle.pending
            assert handle.cancel()
            return handle.pending

        assert asyncio.run(scenario()) is False
        assert live.current.visions[0].id == "v0"

    def test_undo_unknown_ref(self, builder, persistence):
        _, scheduler = make_scheduler(visions(builder), persistence)
        assert not scheduler.undo(ItemRef(ItemTable.VISIONS, "v0"))

    def test_undo_restores_into_current_store(self, builder, persistence):
        """Test changes made while armed survive the undo."""
        live, scheduler = make_scheduler(visions(builder), persistence)
        ref = ItemRef(ItemTable.VISIONS, "v2")

        async def scenario():
            scheduler.schedule_delete(ref)
            store = live.current.snapshot()
            store.visions.append(Vision(id="v3", chart_id="chart-1", sort_order=3))
            live.replace(store)
            scheduler.undo(ref)

        asyncio.run(scenario())
        assert [v.id for v in live.current.visions] == ["v0", "v1", "v2", "v3"]

    def test_undone_signal(self, builder, persistence):
        _, scheduler = make_scheduler(visions(builder), persistence)
        undone = []
        scheduler.deletion_undone.connect(lambda ref, item: undone.append((ref.id, item.id)))

        async def scenario():
            ref = ItemRef(ItemTable.VISIONS, "v1")
            scheduler.schedule_delete(ref)
            scheduler.undo(ref)

        asyncio.run(scenario())
        assert undone == [("v1", "v1")]


class TestCommit:
    """Test commits when the window closes."""

    def test_commit_after_window(self, builder, persistence):
        """Test exactly one delete is issued once the window closes."""
        live, scheduler = make_scheduler(visions(builder), persistence)
        committed = []
        scheduler.delete_committed.connect(lambda ref, item: committed.append(ref.id))

        async def scenario():
            scheduler.schedule_delete(ItemRef(ItemTable.VISIONS, "v1"))
            await asyncio.sleep(GRACE * 4)

        asyncio.run(scenario())

        assert live.current.get_vision("v1") is None
        assert persistence.calls_of("delete_item") == [("delete_item", ItemTable.VISIONS, "v1", None)]
        assert committed == ["v1"]
        assert scheduler.pending == []

    def test_undo_after_commit_is_refused(self, builder, persistence):
        live, scheduler = make_scheduler(visions(builder), persistence)
        ref = ItemRef(ItemTable.VISIONS, "v1")

        async def scenario():
            scheduler.schedule_delete(ref)
            await asyncio.sleep(GRACE * 4)
            return scheduler.undo(ref)

        assert asyncio.run(scenario()) is False
        assert live.current.get_vision("v1") is None

    def test_rearm_commits_once(self, builder, persistence):
        """Test re-arming restarts the timer without a second delete."""
        grace = 0.2
        _, scheduler = make_scheduler(visions(builder), persistence, grace=grace)
        ref = ItemRef(ItemTable.VISIONS, "v1")

        async def scenario():
            scheduler.schedule_delete(ref)
            await asyncio.sleep(grace / 2)
            scheduler.schedule_delete(ref)
            await asyncio.sleep(grace * 3 / 4)
            mid = len(persistence.calls_of("delete_item"))
            await scheduler.join()
            return mid

        assert asyncio.run(scenario()) == 0
        assert len(persistence.calls_of("delete_item")) == 1

    def test_failed_delete_restores_item(self, builder, persistence):
        live, scheduler = make_scheduler(visions(builder), persistence)
        failures = []
        scheduler.delete_failed.connect(lambda ref, message: failures.append((ref.id, message)))
        persistence.fail_on.add("delete_item")

        async def scenario():
            scheduler.schedule_delete(ItemRef(ItemTable.VISIONS, "v0"))
            await asyncio.sleep(GRACE * 4)

        asyncio.run(scenario())

        assert [v.id for v in live.current.visions] == ["v0", "v1", "v2"]
        assert failures == [("v0", MESSAGE_DELETE_FAILED)]
        assert scheduler.pending == []

    def test_independent_timers(self, builder, persistence):
        """Test undoing one deletion leaves another armed one alone."""
        live, scheduler = make_scheduler(visions(builder), persistence)

        async def scenario():
            scheduler.schedule_delete(ItemRef(ItemTable.VISIONS, "v0"))
            scheduler.schedule_delete(ItemRef(ItemTable.VISIONS, "v2"))
            scheduler.undo(ItemRef(ItemTable.VISIONS, "v0"))
            await scheduler.join()

        asyncio.run(scenario())

        assert [v.id for v in live.current.visions] == ["v0", "v1"]
        assert [c[2] for c in persistence.calls_of("delete_item")] == ["v2"]

    def test_commit_all(self, builder, persistence):
        live, scheduler = make_scheduler(visions(builder), persistence, grace=60)

        async def scenario():
            scheduler.schedule_delete(ItemRef(ItemTable.VISIONS, "v0"))
            scheduler.schedule_delete(ItemRef(ItemTable.VISIONS, "v1"))
            await scheduler.commit_all()

        asyncio.run(scenario())

        assert [v.id for v in live.current.visions] == ["v2"]
        assert sorted(c[2] for c in persistence.calls_of("delete_item")) == ["v0", "v1"]

    def test_delete_action_restores_into_tension(self, builder, persistence):
        store = (
            builder.tension("t1")
            .action("a1", tension_id="t1")
            .action("a2", tension_id="t1")
            .build()
        )
        live, scheduler = make_scheduler(store, persistence)
        persistence.fail_on.add("delete_item")

        async def scenario():
            scheduler.schedule_delete(ItemRef(ItemTable.ACTIONS, "a1"))
            await scheduler.join()

        asyncio.run(scenario())
        assert [a.id for a in live.current.get_tension("t1").actions] == ["a1", "a2"]


class TestArm:
    """Test arming."""

    def test_missing_item_raises(self, builder, persistence):
        _, scheduler = make_scheduler(visions(builder), persistence)

        async def scenario():
            scheduler.schedule_delete(ItemRef(ItemTable.VISIONS, "ghost"))

        with pytest.raises(NotFoundError):
            asyncio.run(scenario())

    def test_armed_signal(self, builder, persistence):
        _, scheduler = make_scheduler(visions(builder), persistence)
        armed = []
        scheduler.deletion_armed.connect(lambda ref, item: armed.append(item.content))

        async def scenario():
            ref = ItemRef(ItemTable.VISIONS, "v2")
            scheduler.schedule_delete(ref)
            assert scheduler.is_pending(ref)
            scheduler.undo(ref)

        asyncio.run(scenario())
        assert armed == ["v2"]
