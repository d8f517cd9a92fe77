"""
ChartCore - orchestration for one tension chart.

Wires the live store, the reorder engine, the mutation synchronizer, the
deletion scheduler and the item operations together, and turns their signals
into EventBus notices.
"""

from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from tensionchart.constants import (
    DEFAULT_CHART_ID,
    MESSAGE_MOVE_FAILED,
    MESSAGE_ORDER_FAILED,
    MESSAGE_UNTAGGED,
    get_cascade_area_moves,
    get_dated_sort_descending,
    get_grace_seconds,
    get_persist_in_parallel,
)
from tensionchart.exceptions import NotFoundError, ValidationError
from tensionchart.managers import (
    ChartStorage,
    CRUDManager,
    DeletionHandle,
    DeletionScheduler,
    DragEndEvent,
    EventType,
    ItemEvent,
    JsonPersistence,
    LiveStore,
    MutationOutcome,
    MutationSynchronizer,
    Noop,
    NotificationListener,
    Persistence,
    PlanKind,
    ScrollAnchor,
    StructuredData,
    get_event_bus,
    plan_reorder,
    structure_by_area,
)
from tensionchart.models.base import Action, Area, ItemTable, Reality, Tension, Vision
from tensionchart.models.store import ItemRef, ItemStore
from tensionchart.utils import item_label


class ChartCore:
    """
    Core class for one chart.

    Orchestrates:
    - LiveStore: the snapshot the UI renders
    - plan_reorder: drag-end events to store changes
    - MutationSynchronizer: optimistic apply with full revert
    - DeletionScheduler: deletes with an undo window
    - CRUDManager: creates, edits, links, Area assignment
    - EventBus: user-facing notices
    """

    def __init__(
        self,
        chart_id: str = DEFAULT_CHART_ID,
        data_dir: Optional[Path] = None,
        persistence: Optional[Persistence] = None,
        store: Optional[ItemStore] = None,
        grace_seconds: Optional[float] = None,
        cascade: Optional[bool] = None,
        parallel: Optional[bool] = None,
        notifications: bool = True,
        quiet: bool = False,
    ) -> None:
        """
        Initialize the ChartCore.

        Args:
            chart_id: Chart to open.
            data_dir: Data directory for the JSON backing store.
            persistence: Backing store; defaults to JsonPersistence over data_dir.
            store: Initial snapshot; defaults to the stored chart.
            grace_seconds: Deletion undo window; defaults to config.
            cascade: Whether Area moves cascade; defaults to config.
            parallel: Issue persistence calls concurrently; defaults to config.
            notifications: Subscribe a NotificationListener to the EventBus.
            quiet: Only report failures.
        """
        self.chart_id = chart_id
        self.storage: Optional[ChartStorage] = None
        if store is None or persistence is None:
            self.storage = ChartStorage(data_dir)
        if store is None:
            store = self.storage.load_chart(chart_id).store
        if persistence is None:
            persistence = JsonPersistence(self.storage, chart_id)

        self.persistence = persistence
        self.cascade = get_cascade_area_moves() if cascade is None else cascade
        self.descending = get_dated_sort_descending()

        self.live_store = LiveStore(store)
        self.synchronizer = MutationSynchronizer(
            self.live_store,
            persistence,
            parallel=get_persist_in_parallel() if parallel is None else parallel,
        )
        self.scheduler = DeletionScheduler(
            self.live_store,
            persistence,
            grace_seconds=get_grace_seconds() if grace_seconds is None else grace_seconds,
        )
        self.crud = CRUDManager(self.live_store, persistence, self.synchronizer)

        # Set up event-driven notices
        self.event_bus = get_event_bus()
        self.notification_listener: Optional[NotificationListener] = None
        if notifications:
            self.notification_listener = NotificationListener(quiet=quiet)
            self.event_bus.subscribe(self.notification_listener)

        self.synchronizer.mutation_failed.connect(self._on_mutation_failed)
        self.scheduler.deletion_armed.connect(self._on_deletion_armed)
        self.scheduler.deletion_undone.connect(self._on_deletion_undone)
        self.scheduler.delete_committed.connect(self._on_delete_committed)
        self.scheduler.delete_failed.connect(self._on_delete_failed)
        self.crud.item_created.connect(self._on_item_created)
        self.crud.create_failed.connect(self._on_create_failed)
        self.crud.all_actions_completed.connect(self._on_all_actions_completed)

    @property
    def store(self) -> ItemStore:
        """The current (optimistic) snapshot."""
        return self.live_store.current

    def structure(self) -> StructuredData:
        """Tensions and loose actions grouped by Area."""
        return structure_by_area(self.store, descending=self.descending)

    def area_name(self, area_id: Optional[str]) -> str:
        area = self.store.get_area(area_id)
        return area.name if area else MESSAGE_UNTAGGED

    def _item_event(self, event_type: EventType, ref: ItemRef, item: Any = None, message: str = "") -> ItemEvent:
        area_id = getattr(item, "area_id", None) if item is not None else None
        return ItemEvent(
            type=event_type,
            item_id=ref.id,
            table=ref.table.value,
            label=item_label(item) if item is not None else ref.id,
            area_id=area_id,
            area_name=self.area_name(area_id),
            message=message,
        )

    # =========================================================================
    # Signal handlers
    # =========================================================================

    def _on_mutation_failed(self, message: str) -> None:
        self.event_bus.publish(ItemEvent(type=EventType.MUTATION_FAILED, message=message))

    def _on_deletion_armed(self, ref: ItemRef, item: object) -> None:
        self.event_bus.publish(self._item_event(EventType.DELETE_SCHEDULED, ref, item))

    def _on_deletion_undone(self, ref: ItemRef, item: object) -> None:
        self.event_bus.publish(self._item_event(EventType.DELETE_UNDONE, ref, item))

    def _on_delete_committed(self, ref: ItemRef, item: object) -> None:
        self.event_bus.publish(self._item_event(EventType.ITEM_DELETED, ref, item))

    def _on_delete_failed(self, ref: ItemRef, message: str) -> None:
        self.event_bus.publish(self._item_event(EventType.MUTATION_FAILED, ref, message=message))

    def _on_item_created(self, ref: ItemRef, item: object) -> None:
        self.event_bus.publish(self._item_event(EventType.ITEM_CREATED, ref, item))

    def _on_create_failed(self, ref: ItemRef, message: str) -> None:
        self.event_bus.publish(self._item_event(EventType.MUTATION_FAILED, ref, message=message))

    def _on_all_actions_completed(self, tension_id: str) -> None:
        tension = self.store.get_tension(tension_id)
        ref = ItemRef(ItemTable.TENSIONS, tension_id)
        self.event_bus.publish(self._item_event(EventType.ALL_ACTIONS_COMPLETED, ref, tension))

    # =========================================================================
    # Drag and drop
    # =========================================================================

    async def handle_drag_end(
        self,
        event: Union[DragEndEvent, Dict[str, Any]],
        scroll: Optional[ScrollAnchor] = None,
    ) -> Union[MutationOutcome, Noop]:
        """
        Apply a finished drag.

        Args:
            event: The drag-end event (or its dict form).
            scroll: Caller's scroll anchor; cleared when nothing changes.

        Returns:
            The MutationOutcome, or the Noop when the drop changes nothing.
        """
        if not isinstance(event, DragEndEvent):
            event = DragEndEvent.model_validate(event)

        plan = plan_reorder(event, self.store, cascade=self.cascade)
        if isinstance(plan, Noop):
            if scroll is not None:
                scroll.clear()
            return plan

        message = MESSAGE_ORDER_FAILED if plan.kind == PlanKind.REORDER else MESSAGE_MOVE_FAILED
        outcome = await self.synchronizer.apply(plan.next_store, plan.persist_calls, message)
        if outcome:
            moved = self.store.get(plan.ref)
            if plan.kind == PlanKind.MOVE:
                self.event_bus.publish(
                    ItemEvent(
                        type=EventType.ITEM_MOVED,
                        item_id=plan.ref.id,
                        table=plan.ref.table.value,
                        label=item_label(moved) if moved else plan.ref.id,
                        area_id=plan.area_id,
                        area_name=self.area_name(plan.area_id),
                    )
                )
            else:
                self.event_bus.publish(
                    ItemEvent(
                        type=EventType.ITEMS_REORDERED,
                        item_id=plan.ref.id,
                        table=plan.ref.table.value,
                        label=item_label(moved) if moved else plan.ref.id,
                    )
                )
        return outcome

    # =========================================================================
    # Deletion
    # =========================================================================

    def find_ref(self, item_id: str) -> ItemRef:
        """
        Resolve an item id to its identity.

        Raises:
            NotFoundError: If no item has this id.
        """
        found = self.store.find(item_id)
        if found is None:
            raise NotFoundError(f"Item '{item_id}' not found.")
        return ItemRef(found[0], item_id)

    def request_delete(self, ref: ItemRef) -> DeletionHandle:
        """Hide an item and arm its deletion. Must run inside the event loop."""
        return self.scheduler.schedule_delete(ref)

    def undo_delete(self, ref: ItemRef) -> bool:
        return self.scheduler.undo(ref)

    # =========================================================================
    # Item operations
    # =========================================================================

    async def add_area(self, name: str, color: str = "gray") -> Optional[Area]:
        return await self.crud.add_area(name, color)

    async def add_vision(
        self,
        content: str,
        area_id: Optional[str] = None,
        due_date: Optional[date] = None,
        assignee: Optional[str] = None,
    ) -> Optional[Vision]:
        return await self.crud.add_vision(content, area_id, due_date, assignee)

    async def add_reality(
        self, content: str, area_id: Optional[str] = None, due_date: Optional[date] = None
    ) -> Optional[Reality]:
        return await self.crud.add_reality(content, area_id, due_date)

    async def add_tension(
        self,
        title: str,
        area_id: Optional[str] = None,
        vision_ids: Iterable[str] = (),
        reality_ids: Iterable[str] = (),
    ) -> Optional[Tension]:
        return await self.crud.add_tension(title, area_id, vision_ids, reality_ids)

    async def add_action(
        self,
        title: str,
        tension_id: Optional[str] = None,
        area_id: Optional[str] = None,
        due_date: Optional[date] = None,
        assignee: Optional[str] = None,
    ) -> Optional[Action]:
        return await self.crud.add_action(title, tension_id, area_id, due_date, assignee)

    async def update_item(self, ref: ItemRef, **fields: Any) -> MutationOutcome:
        """Edit plain fields; status changes of actions keep is_completed in step."""
        status = fields.pop("status", None) if ref.table == ItemTable.ACTIONS else None
        if status is not None:
            outcome = await self.crud.set_action_status(ref.id, status, **fields)
        elif fields:
            outcome = await self.crud.update_fields(ref, **fields)
        else:
            raise ValidationError("No fields to update")
        if outcome:
            self.event_bus.publish(self._item_event(EventType.ITEM_UPDATED, ref, self.store.get(ref)))
        return outcome

    async def set_area(
        self,
        ref: ItemRef,
        area_id: Optional[str],
        remove_from_tension: bool = False,
    ) -> Union[MutationOutcome, Noop]:
        if ref.table == ItemTable.ACTIONS:
            return await self.crud.update_action_area(
                ref.id, area_id, remove_from_tension=remove_from_tension, cascade=self.cascade
            )
        return await self.crud.set_area(ref, area_id, cascade=self.cascade)

    async def toggle_link(self, tension_id: str, table: ItemTable, item_id: str) -> MutationOutcome:
        return await self.crud.toggle_link(tension_id, table, item_id)

    async def detach_action(self, action_id: str, clear_area: bool = False) -> Union[MutationOutcome, Noop]:
        return await self.crud.detach_action(action_id, clear_area=clear_area, cascade=self.cascade)

    async def remove_area(self, area_id: str) -> MutationOutcome:
        return await self.crud.remove_area(area_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self, commit_pending: bool = True) -> None:
        """
        Shut down: commit (or wait out) pending deletions and stop notices.

        Args:
            commit_pending: Commit armed deletions now instead of waiting for their timers.
        """
        if commit_pending:
            await self.scheduler.commit_all()
        else:
            await self.scheduler.join()
        if self.notification_listener is not None:
            self.event_bus.unsubscribe(self.notification_listener)
            self.notification_listener = None
