"""
Tests for ChartCore orchestration and its EventBus notices.
"""
import asyncio
import shutil
from typing import List

import pytest

from tensionchart.constants import MESSAGE_ORDER_FAILED
from tensionchart.core import ChartCore
from tensionchart.exceptions import ValidationError
from tensionchart.managers import (
    EventListener,
    EventType,
    ItemEvent,
    Noop,
    NotificationListener,
    ScrollAnchor,
    get_event_bus,
)
from tensionchart.models.base import ActionStatus, ItemTable
from tensionchart.models.store import ItemRef


class RecordingListener(EventListener):
    """Collects every published event."""

    def __init__(self) -> None:
        self.events: List[ItemEvent] = []

    @property
    def subscribed_events(self) -> List[EventType]:
        return list(EventType)

    def handle(self, event) -> None:
        self.events.append(event)

    def types(self) -> List[EventType]:
        return [event.type for event in self.events]


@pytest.fixture
def listener():
    recorder = RecordingListener()
    get_event_bus().subscribe(recorder)
    return recorder


def make_core(store, persistence, **kwargs):
    kwargs.setdefault("notifications", False)
    kwargs.setdefault("cascade", False)
    return ChartCore(chart_id=store.chart_id, store=store, persistence=persistence, **kwargs)


class TestDragEnd:
    """Test drag-end handling through the core."""

    def test_reorder_publishes_notice(self, builder, persistence, listener):
        store = (
            builder.area("a")
            .tension("t1", area_id="a", sort_order=0)
            .tension("t2", area_id="a", sort_order=1)
            .build()
        )
        core = make_core(store, persistence)

        outcome = asyncio.run(core.handle_drag_end({"dragged_id": "t2", "drop_target_id": "t1"}))

        assert outcome
        assert core.store.get_tension("t1").sort_order == 1
        assert core.store.get_tension("t2").sort_order == 0
        assert listener.types() == [EventType.ITEMS_REORDERED]

    def test_move_publishes_area_name(self, builder, persistence, listener):
        store = (
            builder.area("a", name="Design")
            .area("b", name="Engineering")
            .tension("t1", area_id="a")
            .action("x", tension_id="t1", area_id="a")
            .action("l1", area_id="b", sort_order=3)
            .build()
        )
        core = make_core(store, persistence)

        asyncio.run(core.handle_drag_end({
            "dragged_id": "x",
            "drop_target_meta": {"zone": "action-area", "area_id": "b"},
        }))

        moved = core.store.get_action("x")
        assert (moved.tension_id, moved.area_id, moved.sort_order) == (None, "b", 4)
        event = listener.events[-1]
        assert event.type == EventType.ITEM_MOVED
        assert event.area_name == "Engineering"
        assert event.label == "x"

    def test_failed_reorder_reverts_and_reports(self, builder, persistence, listener):
        store = (
            builder.tension("t1")
            .action("a1", tension_id="t1", sort_order=0)
            .action("a2", tension_id="t1", sort_order=1)
            .action("a3", tension_id="t1", sort_order=2)
            .build()
        )
        before = store.snapshot()
        core = make_core(store, persistence)
        persistence.fail_on.add("set_order")

        outcome = asyncio.run(core.handle_drag_end({"dragged_id": "a1", "drop_target_id": "a3"}))

        assert not outcome
        assert core.store == before
        assert listener.types() == [EventType.MUTATION_FAILED]
        assert listener.events[0].message == MESSAGE_ORDER_FAILED

    def test_noop_clears_scroll_anchor(self, builder, persistence, listener):
        core = make_core(builder.vision("v1").build(), persistence)
        anchor = ScrollAnchor(ttl_seconds=10)
        anchor.capture(300.0)

        result = asyncio.run(core.handle_drag_end({"dragged_id": "v1", "drop_target_id": "v1"}, scroll=anchor))

        assert isinstance(result, Noop)
        assert not anchor.pending
        assert persistence.calls == []
        assert listener.events == []

    def test_cascade_from_config_flag(self, builder, persistence):
        store = (
            builder.area("a")
            .area("b")
            .tension("t1", area_id="a")
            .action("a1", tension_id="t1", area_id="a")
            .build()
        )
        core = make_core(store, persistence, cascade=True)
        asyncio.run(core.handle_drag_end({
            "dragged_id": "t1",
            "drop_target_meta": {"zone": "tension-area", "area_id": "b"},
        }))
        assert core.store.get_action("a1").area_id == "b"
        assert persistence.calls_of("update_item")


class TestDeletion:
    """Test deletes through the core."""

    def test_delete_and_undo(self, builder, persistence, listener):
        core = make_core(builder.vision("v1").vision("v2").build(), persistence, grace_seconds=0.05)

        async def scenario():
            ref = core.find_ref("v1")
            core.request_delete(ref)
            hidden = core.store.get_vision("v1") is None
            restored = core.undo_delete(ref)
            await core.close()
            return hidden, restored

        hidden, restored = asyncio.run(scenario())

        assert hidden and restored
        assert [v.id for v in core.store.visions] == ["v1", "v2"]
        assert listener.types() == [EventType.DELETE_SCHEDULED, EventType.DELETE_UNDONE]
        assert persistence.calls_of("delete_item") == []

    def test_close_commits_pending(self, builder, persistence, listener):
        core = make_core(builder.vision("v1").build(), persistence, grace_seconds=60)

        async def scenario():
            core.request_delete(core.find_ref("v1"))
            await core.close()

        asyncio.run(scenario())

        assert len(persistence.calls_of("delete_item")) == 1
        assert listener.types() == [EventType.DELETE_SCHEDULED, EventType.ITEM_DELETED]

    def test_close_waits_when_not_committing(self, builder, persistence):
        core = make_core(builder.vision("v1").build(), persistence, grace_seconds=0.02)

        async def scenario():
            core.request_delete(core.find_ref("v1"))
            await core.close(commit_pending=False)

        asyncio.run(scenario())
        assert len(persistence.calls_of("delete_item")) == 1

    def test_failed_delete_reports(self, builder, persistence, listener):
        core = make_core(builder.vision("v1").build(), persistence, grace_seconds=0.01)
        persistence.fail_on.add("delete_item")

        async def scenario():
            core.request_delete(core.find_ref("v1"))
            await core.close(commit_pending=False)

        asyncio.run(scenario())

        assert core.store.get_vision("v1") is not None
        assert listener.types()[-1] == EventType.MUTATION_FAILED


class TestItemOperations:
    """Test item operations routed through the core."""

    def test_update_action_status_and_title(self, builder, persistence):
        core = make_core(builder.action("a1").build(), persistence)
        ref = ItemRef(ItemTable.ACTIONS, "a1")

        asyncio.run(core.update_item(ref, title="Renamed", status="done"))

        action = core.store.get_action("a1")
        assert action.title == "Renamed"
        assert action.status == ActionStatus.DONE
        assert action.is_completed
        updates = persistence.calls_of("update_item")
        assert len(updates) == 1
        assert {"title", "status", "is_completed"} <= set(updates[0][3])

    def test_failed_status_edit_reverts_title_too(self, builder, persistence, listener):
        """Test a title and status edit is reverted as one change."""
        core = make_core(builder.action("a1").build(), persistence)
        persistence.fail_on.add("update_item")

        outcome = asyncio.run(core.update_item(ItemRef(ItemTable.ACTIONS, "a1"), title="Renamed", status="done"))

        action = core.store.get_action("a1")
        assert not outcome
        assert action.title == "a1"
        assert action.status != ActionStatus.DONE
        assert not action.is_completed
        assert listener.types() == [EventType.MUTATION_FAILED]

    def test_update_without_fields(self, builder, persistence):
        core = make_core(builder.action("a1").build(), persistence)
        with pytest.raises(ValidationError):
            asyncio.run(core.update_item(ItemRef(ItemTable.ACTIONS, "a1")))

    def test_set_area_routes_actions(self, builder, persistence):
        core = make_core(builder.area("b").tension("t1").action("a1", tension_id="t1").build(), persistence)
        asyncio.run(core.set_area(ItemRef(ItemTable.ACTIONS, "a1"), "b"))

        action = core.store.get_action("a1")
        assert action.area_id == "b"
        assert action.tension_id == "t1"

    def test_all_actions_completed_notice(self, builder, persistence, listener):
        core = make_core(builder.tension("t1", title="Gap").action("a1", tension_id="t1").build(), persistence)
        asyncio.run(core.update_item(ItemRef(ItemTable.ACTIONS, "a1"), status="done"))

        assert listener.types() == [EventType.ALL_ACTIONS_COMPLETED, EventType.ITEM_UPDATED]
        assert listener.events[0].label == "Gap"

    def test_structure_uses_live_store(self, builder, persistence):
        core = make_core(builder.area("a").tension("t1", area_id="a").build(), persistence)
        assert [t.id for t in core.structure().categorized[0].tensions] == ["t1"]
        assert core.area_name("a") == "a"
        assert core.area_name(None) == "Uncategorized"


class TestJsonBackedCore:
    """Test the core over the JSON file backing store."""

    def test_changes_survive_reopen(self, data_dir):
        async def first_session():
            core = ChartCore(data_dir=data_dir, notifications=False)
            area = await core.add_area("Design")
            vision = await core.add_vision("Ship v1", area_id=area.id)
            tension = await core.add_tension("Gap", vision_ids=[vision.id])
            await core.add_action("Draft", tension_id=tension.id)
            await core.close()
            return area.id, tension.id

        area_id, tension_id = asyncio.run(first_session())

        core = ChartCore(data_dir=data_dir, notifications=False)
        tension = core.store.get_tension(tension_id)
        assert tension.title == "Gap"
        assert tension.actions[0].area_id == area_id
        assert not core.crud.is_temporary(tension.actions[0].id)

    def test_reorder_persists(self, data_dir):
        async def session():
            core = ChartCore(data_dir=data_dir, notifications=False)
            first = await core.add_vision("one")
            second = await core.add_vision("two")
            await core.handle_drag_end({"dragged_id": second.id, "drop_target_id": first.id})
            await core.close()
            return first.id, second.id

        first_id, second_id = asyncio.run(session())

        store = ChartCore(data_dir=data_dir, notifications=False).store
        assert store.get_vision(second_id).sort_order == 0
        assert store.get_vision(first_id).sort_order == 1

    def test_create_dropped_when_write_fails(self, data_dir, listener):
        """Test an I/O failure while saving removes the temporary item."""
        async def session():
            core = ChartCore(data_dir=data_dir, notifications=False)
            await core.add_area("Design")
            shutil.rmtree(data_dir / "charts")
            created = await core.add_vision("x")
            await core.close()
            return core, created

        core, created = asyncio.run(session())

        assert created is None
        assert core.store.visions == []
        assert listener.types()[-1] == EventType.MUTATION_FAILED

    def test_reorder_reverts_when_chart_unreadable(self, data_dir, listener):
        async def session():
            core = ChartCore(data_dir=data_dir, notifications=False)
            first = await core.add_vision("one")
            second = await core.add_vision("two")
            chart_path = data_dir / "charts" / f"{core.chart_id}.json"
            chart_path.unlink()
            chart_path.mkdir()
            outcome = await core.handle_drag_end({"dragged_id": second.id, "drop_target_id": first.id})
            await core.close()
            return core, outcome

        core, outcome = asyncio.run(session())

        assert not outcome
        assert [v.content for v in core.store.visions] == ["one", "two"]
        assert [v.sort_order for v in core.store.visions] == [1, 2]
        assert listener.events[-1].message == MESSAGE_ORDER_FAILED


class TestNotificationListener:
    """Test terminal notices."""

    def test_failure_goes_to_stderr(self, capsys):
        NotificationListener().handle(ItemEvent(type=EventType.MUTATION_FAILED, message="Nope"))
        captured = capsys.readouterr()
        assert "Nope" in captured.err
        assert captured.out == ""

    def test_quiet_hides_successes(self, capsys):
        NotificationListener(quiet=True).handle(ItemEvent(type=EventType.ITEM_MOVED, label="x"))
        assert capsys.readouterr().out == ""

    def test_moved_notice(self, capsys):
        NotificationListener().handle(ItemEvent(type=EventType.ITEM_MOVED, label="Draft", area_name="Design"))
        assert "Moved 'Draft' to Design" in capsys.readouterr().out
