"""
CRUDManager for tensionchart.

Handles creating, editing and linking items. Every change is applied to the
live store first and confirmed with the backing store afterwards.
"""

import uuid
from datetime import date, datetime
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from tensionchart.constants import (
    LOOSE,
    MESSAGE_CREATE_FAILED,
    MESSAGE_MOVE_FAILED,
    MESSAGE_UPDATE_FAILED,
    get_temp_id_prefix,
)
from tensionchart.exceptions import NotFoundError, PersistenceError, ValidationError
from tensionchart.managers.mutation_synchronizer import (
    LiveStore,
    MutationOutcome,
    MutationSynchronizer,
)
from tensionchart.managers.partition_resolver import (
    effective_area_id,
    next_sort_order,
    resolve_partition,
)
from tensionchart.managers.persistence import DeleteItemCall, Persistence, UpdateItemCall
from tensionchart.managers.reorder_engine import (
    Noop,
    PlanResult,
    plan_detach_action,
    plan_set_area,
)
from tensionchart.models.base import (
    Action,
    ActionStatus,
    Area,
    ItemTable,
    Reality,
    Tension,
    TensionStatus,
    Vision,
)
from tensionchart.models.store import ItemRef, StoreItem
from tensionchart.signals import signal

# Fields that change an item's partition; they go through the move operations
_STRUCTURAL_FIELDS = {"id", "chart_id", "area_id", "tension_id", "sort_order", "actions", "created_at"}

_LINK_FIELDS = {
    ItemTable.VISIONS: "vision_ids",
    ItemTable.REALITIES: "reality_ids",
}


class CRUDManager:
    """
    Manages item operations for tensionchart.

    Handles:
    - Adding items (areas, visions, realities, tensions, actions) with
      temporary ids until the backing store assigns the real one
    - Updating plain fields (title, content, description, due_date, status...)
    - Linking Visions and Realities to Tensions
    - Area assignment and detaching actions from their Tension
    - Removing Areas
    """

    def __init__(
        self,
        live_store: LiveStore,
        persistence: Persistence,
        synchronizer: MutationSynchronizer,
        temp_id_prefix: Optional[str] = None,
    ) -> None:
        """
        Initialize CRUDManager.

        Args:
            live_store: The store the UI reads.
            persistence: Backing store collaborator (used for creates).
            synchronizer: Applies every other change optimistically.
            temp_id_prefix: Prefix of local ids; defaults to the configured one.
        """
        self.live_store = live_store
        self.persistence = persistence
        self.synchronizer = synchronizer
        self.temp_id_prefix = temp_id_prefix or get_temp_id_prefix()

    @signal
    def item_created(self, ref: ItemRef, item: object) -> None:
        """Emitted when a new item received its persisted id."""

    @signal
    def create_failed(self, ref: ItemRef, message: str) -> None:
        """Emitted when the backing store rejected a new item."""

    @signal
    def all_actions_completed(self, tension_id: str) -> None:
        """Emitted when the last open action of an unresolved Tension is done."""

    @property
    def store(self):
        return self.live_store.current

    def is_temporary(self, item_id: str) -> bool:
        return item_id.startswith(self.temp_id_prefix)

    def _temp_id(self) -> str:
        return f"{self.temp_id_prefix}{uuid.uuid4().hex}"

    # =========================================================================
    # Create
    # =========================================================================

    async def add_area(self, name: str, color: str = "gray") -> Optional[Area]:
        area = self._build(Area, chart_id=self.store.chart_id, name=name, color=color)
        return await self._create(area, None)

    async def add_vision(
        self,
        content: str,
        area_id: Optional[str] = None,
        due_date: Optional[date] = None,
        assignee: Optional[str] = None,
    ) -> Optional[Vision]:
        vision = self._build(
            Vision,
            chart_id=self.store.chart_id,
            content=content,
            area_id=area_id,
            due_date=due_date,
            assignee=assignee,
        )
        return await self._create(vision, None)

    async def add_reality(
        self,
        content: str,
        area_id: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> Optional[Reality]:
        reality = self._build(
            Reality,
            chart_id=self.store.chart_id,
            content=content,
            area_id=area_id,
            due_date=due_date,
        )
        return await self._create(reality, None)

    async def add_tension(
        self,
        title: str,
        area_id: Optional[str] = None,
        vision_ids: Iterable[str] = (),
        reality_ids: Iterable[str] = (),
    ) -> Optional[Tension]:
        if not title or not title.strip():
            raise ValidationError("Tension title is required")
        tension = self._build(
            Tension,
            chart_id=self.store.chart_id,
            title=title.strip(),
            area_id=area_id,
            vision_ids=list(vision_ids),
            reality_ids=list(reality_ids),
        )
        return await self._create(tension, None)

    async def add_action(
        self,
        title: str,
        tension_id: Optional[str] = None,
        area_id: Optional[str] = None,
        due_date: Optional[date] = None,
        assignee: Optional[str] = None,
    ) -> Optional[Action]:
        """Add an action to a Tension, or a loose action when tension_id is None.

        An action added to a Tension takes the Tension's Area unless one is given.

        Raises:
            ValidationError: If the title is blank.
            NotFoundError: If the Tension does not exist.
        """
        if not title or not title.strip():
            raise ValidationError("Action title is required")

        container = LOOSE
        if tension_id is not None:
            tension = self.store.get_tension(tension_id)
            if tension is None:
                raise NotFoundError(f"Tension '{tension_id}' not found.")
            container = tension.id
            if area_id is None:
                area_id = effective_area_id(tension, self.store)

        action = self._build(
            Action,
            chart_id=self.store.chart_id,
            title=title.strip(),
            tension_id=tension_id,
            area_id=area_id,
            due_date=due_date,
            assignee=assignee,
        )
        return await self._create(action, container)

    def _build(self, model, **fields: Any):
        try:
            return model(id=self._temp_id(), **fields)
        except PydanticValidationError as e:
            raise ValidationError(str(e)) from e

    async def _create(self, item: StoreItem, container: Optional[str]) -> Optional[StoreItem]:
        table = item.item_table
        ref = ItemRef(table, item.id)

        store = self.store.snapshot()
        item.sort_order = next_sort_order(store, resolve_partition(item, store))
        store.append(item, container)
        self.live_store.replace(store)

        fields = item.model_dump(mode="json", exclude={"id", "actions"})
        try:
            real_id = await self.persistence.create_item(table, fields)
        except PersistenceError:
            self._drop_temp(ref)
            self.create_failed(ref, MESSAGE_CREATE_FAILED)
            return None

        store = self.store.snapshot()
        if not store.replace_id(ref, real_id):
            # Deleted locally while the create was in flight
            return None
        self.live_store.replace(store)
        created = store.get(ItemRef(table, real_id))
        self.item_created(ItemRef(table, real_id), created)
        return created

    def _drop_temp(self, ref: ItemRef) -> None:
        store = self.store.snapshot()
        if store.locate(ref) is None:
            return
        store.remove(ref)
        self.live_store.replace(store)

    # =========================================================================
    # Update
    # =========================================================================

    def _require(self, ref: ItemRef) -> StoreItem:
        item = self.store.get(ref)
        if item is None:
            raise NotFoundError(f"{ref.table.value} item '{ref.id}' not found.")
        return item

    async def update_fields(
        self,
        ref: ItemRef,
        failure_message: Optional[str] = None,
        **fields: Any,
    ) -> MutationOutcome:
        """Edit plain fields of an item optimistically.

        Args:
            ref: Item to edit.
            failure_message: Message shown if the edit is reverted.
            **fields: Field values, validated against the item's model.

        Raises:
            NotFoundError: If the item is not in the store.
            ValidationError: If a field is unknown, structural, or invalid.
        """
        item = self._require(ref)
        if not fields:
            raise ValidationError("No fields to update")

        structural = set(fields) & _STRUCTURAL_FIELDS
        if structural:
            raise ValidationError(
                f"Cannot edit {', '.join(sorted(structural))} directly. Use a move instead."
            )
        unknown = set(fields) - set(type(item).model_fields)
        if unknown:
            raise ValidationError(f"Unknown fields for {ref.table.value}: {', '.join(sorted(unknown))}")

        try:
            validated = type(item).model_validate({**item.model_dump(), **fields})
        except PydanticValidationError as e:
            raise ValidationError(str(e)) from e

        next_store = self.store.snapshot()
        target = next_store.get(ref)
        changed = set(fields)
        for name in changed:
            setattr(target, name, getattr(validated, name))

        # An item leaving the dated bucket joins the end of its undated partition
        if "due_date" in changed and getattr(item, "due_date", None) is not None and target.due_date is None:
            target.sort_order = next_sort_order(
                next_store, resolve_partition(target, next_store), exclude_id=target.id
            )
            changed.add("sort_order")

        if "updated_at" in type(item).model_fields:
            target.updated_at = datetime.now()
            changed.add("updated_at")

        call = UpdateItemCall(
            ref.table,
            item_id=ref.id,
            fields=target.model_dump(mode="json", include=changed),
        )
        return await self.synchronizer.apply(
            next_store, [call], failure_message or MESSAGE_UPDATE_FAILED
        )

    async def set_tension_status(
        self, tension_id: str, status: Union[str, TensionStatus]
    ) -> MutationOutcome:
        return await self.update_fields(
            ItemRef(ItemTable.TENSIONS, tension_id), status=TensionStatus(status)
        )

    async def set_action_status(
        self, action_id: str, status: Union[str, ActionStatus], **fields: Any
    ) -> MutationOutcome:
        """Set an action's status, keeping is_completed in step with "done".

        Other fields passed along are edited in the same mutation.
        """
        status = ActionStatus(status)
        done = status == ActionStatus.DONE
        fields.update(status=status, is_completed=done)
        return await self._complete_action(action_id, done, **fields)

    async def set_action_completed(self, action_id: str, completed: bool) -> MutationOutcome:
        """Check or uncheck an action. Checking also sets status to done."""
        action = self.store.get_action(action_id)
        if action is None:
            raise NotFoundError(f"actions item '{action_id}' not found.")
        status = ActionStatus.DONE if completed else action.status
        return await self._complete_action(
            action_id, completed, status=status, is_completed=completed
        )

    async def _complete_action(self, action_id: str, done: bool, **fields: Any) -> MutationOutcome:
        finished = self._finished_tension(action_id) if done else None
        outcome = await self.update_fields(ItemRef(ItemTable.ACTIONS, action_id), **fields)
        if outcome and finished is not None:
            self.all_actions_completed(finished)
        return outcome

    def _finished_tension(self, action_id: str) -> Optional[str]:
        """Id of the Tension this action would finish, if any."""
        action = self.store.get_action(action_id)
        if action is None or action.tension_id is None:
            return None
        tension = self.store.get_tension(action.tension_id)
        if tension is None or tension.is_resolved or not tension.actions:
            return None
        if all(a.id == action_id or a.is_done for a in tension.actions):
            return tension.id
        return None

    async def toggle_link(self, tension_id: str, table: ItemTable, item_id: str) -> MutationOutcome:
        """Link a Vision or Reality to a Tension, or unlink it when already linked.

        Raises:
            ValidationError: If the table is not visions or realities.
            NotFoundError: If the Tension or the linked item does not exist.
        """
        table = ItemTable(table)
        if table not in _LINK_FIELDS:
            raise ValidationError(f"Only visions and realities can be linked, not {table.value}")
        self._require(ItemRef(ItemTable.TENSIONS, tension_id))
        self._require(ItemRef(table, item_id))

        next_store = self.store.snapshot()
        tension = next_store.get_tension(tension_id)
        field_name = _LINK_FIELDS[table]
        linked = list(getattr(tension, field_name))
        if item_id in linked:
            linked.remove(item_id)
        else:
            linked.append(item_id)
        setattr(tension, field_name, linked)

        call = UpdateItemCall(ItemTable.TENSIONS, item_id=tension_id, fields={field_name: linked})
        return await self.synchronizer.apply(next_store, [call], MESSAGE_UPDATE_FAILED)

    # =========================================================================
    # Area assignment
    # =========================================================================

    async def _apply_plan(self, plan: PlanResult) -> Union[MutationOutcome, Noop]:
        if isinstance(plan, Noop):
            return plan
        return await self.synchronizer.apply(plan.next_store, plan.persist_calls, MESSAGE_MOVE_FAILED)

    async def set_area(
        self, ref: ItemRef, area_id: Optional[str], cascade: bool = False
    ) -> Union[MutationOutcome, Noop]:
        """Move a Vision, Reality, Tension or loose action to another Area."""
        self._require(ref)
        return await self._apply_plan(plan_set_area(self.store, ref, area_id, cascade=cascade))

    async def update_action_area(
        self,
        action_id: str,
        area_id: Optional[str],
        remove_from_tension: bool = False,
        cascade: bool = False,
    ) -> Union[MutationOutcome, Noop]:
        ref = ItemRef(ItemTable.ACTIONS, action_id)
        self._require(ref)
        plan = plan_set_area(
            self.store, ref, area_id, remove_from_tension=remove_from_tension, cascade=cascade
        )
        return await self._apply_plan(plan)

    async def detach_action(
        self, action_id: str, clear_area: bool = False, cascade: bool = False
    ) -> Union[MutationOutcome, Noop]:
        self._require(ItemRef(ItemTable.ACTIONS, action_id))
        return await self._apply_plan(
            plan_detach_action(self.store, action_id, clear_area=clear_area, cascade=cascade)
        )

    async def remove_area(self, area_id: str) -> MutationOutcome:
        """Remove an Area. Items that referenced it show as uncategorized."""
        ref = ItemRef(ItemTable.AREAS, area_id)
        self._require(ref)
        next_store = self.store.snapshot()
        next_store.remove(ref)
        return await self.synchronizer.apply(
            next_store, [DeleteItemCall(ItemTable.AREAS, item_id=area_id)], MESSAGE_UPDATE_FAILED
        )
