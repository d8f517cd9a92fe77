"""
Reorder engine for tensionchart.

Turns a drag-end event into a plan: the next store snapshot plus the
persistence calls that make the backing store agree with it. Planning is pure;
applying a plan is the MutationSynchronizer's job.

Two policies govern ordering keys:
- within-partition reorder: dense renumbering to 0..n-1 in the new order
- cross-partition move: append to the end, max(target keys) + 1
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel

from tensionchart.constants import LOOSE, UNCATEGORIZED, UNDATED
from tensionchart.models.base import Action, ItemTable, Tension
from tensionchart.models.store import ItemRef, ItemStore, StoreItem
from tensionchart.managers.partition_resolver import (
    PartitionKey,
    area_group,
    effective_area_id,
    group_filter,
    next_sort_order,
    partition_members,
    resolve_partition,
)
from tensionchart.managers.persistence import (
    ChartAreaCall,
    MoveItemCall,
    PersistCall,
    SetOrderCall,
    UpdateItemCall,
)


class DropZone(str, Enum):
    """Kinds of drop targets the UI declares."""

    VISION_AREA = "vision-area"
    REALITY_AREA = "reality-area"
    TENSION_AREA = "tension-area"
    ACTION_AREA = "action-area"
    TENSION = "tension"
    ITEM = "item"


AREA_ZONES = {
    DropZone.VISION_AREA,
    DropZone.REALITY_AREA,
    DropZone.TENSION_AREA,
    DropZone.ACTION_AREA,
}

# Which dragged tables each zone accepts
ZONE_TABLES: Dict[DropZone, Tuple[ItemTable, ...]] = {
    DropZone.VISION_AREA: (ItemTable.VISIONS,),
    DropZone.REALITY_AREA: (ItemTable.REALITIES,),
    DropZone.TENSION_AREA: (ItemTable.TENSIONS,),
    DropZone.ACTION_AREA: (ItemTable.ACTIONS, ItemTable.TENSIONS),
    DropZone.TENSION: (ItemTable.TENSIONS, ItemTable.ACTIONS),
}

AREA_ZONE_FOR_TABLE: Dict[ItemTable, DropZone] = {
    ItemTable.VISIONS: DropZone.VISION_AREA,
    ItemTable.REALITIES: DropZone.REALITY_AREA,
    ItemTable.TENSIONS: DropZone.TENSION_AREA,
    ItemTable.ACTIONS: DropZone.ACTION_AREA,
}

# Area cascades, keyed by (source table, affected table). At most two hops:
# Tension -> its Actions -> each telescoped Action's child chart Visions.
CASCADE_POLICY: Dict[Tuple[ItemTable, ItemTable], str] = {
    (ItemTable.TENSIONS, ItemTable.ACTIONS): "child actions take the tension's area",
    (ItemTable.ACTIONS, ItemTable.VISIONS): "child chart visions take the action's area",
}
MAX_CASCADE_HOPS = 2


class DropTargetMeta(BaseModel):
    """Group metadata a drop target declares."""

    zone: DropZone
    area_id: Optional[str] = None
    tension_id: Optional[str] = None


class DragEndEvent(BaseModel):
    """A finished drag: what was dragged and where it was dropped."""

    dragged_id: str
    drop_target_id: Optional[str] = None
    drop_target_meta: Optional[DropTargetMeta] = None


class PlanKind(str, Enum):
    REORDER = "reorder"
    MOVE = "move"
    UPDATE = "update"


@dataclass
class Noop:
    """The event describes no meaningful change."""

    reason: str

    def __bool__(self) -> bool:
        return False


@dataclass
class ReorderPlan:
    """Next snapshot plus the persistence calls that confirm it."""

    kind: PlanKind
    ref: ItemRef
    next_store: ItemStore
    persist_calls: List[PersistCall] = field(default_factory=list)
    source: Optional[PartitionKey] = None
    target: Optional[PartitionKey] = None
    area_id: Optional[str] = None


PlanResult = Union[ReorderPlan, Noop]


@dataclass
class _DropTarget:
    partition: PartitionKey
    anchor: Optional[StoreItem] = None


def _area_from_group(group: Optional[str]) -> Optional[str]:
    return None if group in (None, UNCATEGORIZED) else group


def _area_partition(table: ItemTable, area_id: Optional[str], store: ItemStore) -> PartitionKey:
    group = area_group(area_id, store)
    if table == ItemTable.TENSIONS:
        return PartitionKey(ItemTable.TENSIONS, group)
    if table == ItemTable.ACTIONS:
        return PartitionKey(ItemTable.ACTIONS, LOOSE, UNDATED, area=group)
    return PartitionKey(table, group, UNDATED)


def _anchor_in(store: ItemStore, item_id: Optional[str], key: PartitionKey) -> Optional[StoreItem]:
    if item_id is None:
        return None
    found = store.find(item_id)
    if found is None or found[0] != key.table:
        return None
    return found[1] if resolve_partition(found[1], store) == key else None


def _resolve_drop_target(
    event: DragEndEvent, table: ItemTable, dragged: StoreItem, store: ItemStore
) -> Optional[_DropTarget]:
    meta = event.drop_target_meta

    if meta is not None and meta.zone != DropZone.ITEM:
        if table not in ZONE_TABLES[meta.zone]:
            return None

        if meta.zone in AREA_ZONES:
            key = _area_partition(table, meta.area_id, store)
            return _DropTarget(key, _anchor_in(store, event.drop_target_id, key))

        tension = store.get_tension(meta.tension_id or event.drop_target_id)
        if table == ItemTable.TENSIONS:
            if tension is None:
                return None
            return _DropTarget(resolve_partition(tension, store), tension)
        if tension is None:
            # The tension is gone; the action falls back to the loose group
            return _DropTarget(_area_partition(ItemTable.ACTIONS, dragged.area_id, store))
        return _DropTarget(PartitionKey(ItemTable.ACTIONS, tension.id, UNDATED))

    if event.drop_target_id is None:
        return None
    found = store.find(event.drop_target_id)
    if found is None:
        return None
    target_table, target_item = found

    if target_table != table:
        if table == ItemTable.ACTIONS and target_table == ItemTable.TENSIONS:
            return _DropTarget(PartitionKey(ItemTable.ACTIONS, target_item.id, UNDATED))
        return None

    return _DropTarget(resolve_partition(target_item, store), target_item)


def plan_reorder(
    event: DragEndEvent,
    store: ItemStore,
    cascade: bool = False,
) -> PlanResult:
    """
    Plan the store change for a drag-end event.

    Args:
        event: The drag-end event.
        store: Current (latest optimistic) store snapshot. Not modified.
        cascade: Whether Area moves cascade (Tension -> Actions -> child chart Visions).

    Returns:
        A ReorderPlan, or a Noop explaining why nothing changes.
    """
    if event.drop_target_id is None and event.drop_target_meta is None:
        return Noop("no drop target")
    if event.dragged_id == event.drop_target_id:
        return Noop("dropped onto itself")

    found = store.find(event.dragged_id)
    if found is None:
        return Noop("dragged item is not in the store")
    table, dragged = found

    if getattr(dragged, "due_date", None) is not None:
        return Noop("dated items are ordered by due date")

    source = resolve_partition(dragged, store)
    target = _resolve_drop_target(event, table, dragged, store)
    if target is None:
        return Noop("drop target is outside any tracked partition")
    if target.partition.is_dated:
        return Noop("drop target is ordered by due date")

    if target.partition == source:
        if target.anchor is None or target.anchor.id == dragged.id:
            return Noop("no drop position inside the partition")
        return _plan_within(store, table, dragged, target.anchor, source)

    return _plan_move(store, table, dragged, source, target.partition, cascade)


# =============================================================================
# Within-partition reorder
# =============================================================================


def _container_lists(store: ItemStore, table: ItemTable, key: PartitionKey) -> List[List]:
    if table == ItemTable.AREAS:
        return [store.areas]
    if table == ItemTable.VISIONS:
        return [store.visions]
    if table == ItemTable.REALITIES:
        return [store.realities]
    if table == ItemTable.TENSIONS:
        return [store.tensions]
    if key.group == LOOSE:
        return [store.loose_actions]
    tension = store.get_tension(key.group)
    return [tension.actions] if tension else []


def _apply_order(items: List, order: Dict[str, int]) -> None:
    """Reorder members in the slots they already occupy; other items stay put."""
    slots = [i for i, item in enumerate(items) if item.id in order]
    members = sorted((items[i] for i in slots), key=lambda item: order[item.id])
    for slot, item in zip(slots, members):
        item.sort_order = order[item.id]
        items[slot] = item


def _plan_within(
    store: ItemStore,
    table: ItemTable,
    dragged: StoreItem,
    anchor: StoreItem,
    key: PartitionKey,
) -> ReorderPlan:
    ids = [item.id for item in partition_members(store, key)]
    old_index = ids.index(dragged.id)
    new_index = ids.index(anchor.id)
    ids.insert(new_index, ids.pop(old_index))
    order = {item_id: index for index, item_id in enumerate(ids)}

    next_store = store.snapshot()
    for items in _container_lists(next_store, table, key):
        _apply_order(items, order)

    call = SetOrderCall(
        table=table,
        items=[{"id": item_id, "sort_order": index} for item_id, index in order.items()],
        group_filter=group_filter(store, key),
    )
    return ReorderPlan(
        kind=PlanKind.REORDER,
        ref=ItemRef(table, dragged.id),
        next_store=next_store,
        persist_calls=[call],
        source=key,
        target=key,
    )


# =============================================================================
# Cross-partition move
# =============================================================================


def _cascade_area(
    table: ItemTable, item: StoreItem, area_id: Optional[str], hop: int = 1
) -> List[PersistCall]:
    """Apply the Area cascade policy to an item's dependents (in place)."""
    calls: List[PersistCall] = []
    if hop > MAX_CASCADE_HOPS:
        return calls

    for source_table, affected_table in CASCADE_POLICY:
        if source_table != table:
            continue
        if affected_table == ItemTable.ACTIONS and isinstance(item, Tension):
            for action in item.actions:
                action.area_id = area_id
                calls.append(UpdateItemCall(ItemTable.ACTIONS, item_id=action.id, fields={"area_id": area_id}))
                calls.extend(_cascade_area(ItemTable.ACTIONS, action, area_id, hop + 1))
        elif affected_table == ItemTable.VISIONS and isinstance(item, Action):
            if item.child_chart_id:
                calls.append(ChartAreaCall(chart_id=item.child_chart_id, area_id=area_id))
    return calls


def _plan_move(
    store: ItemStore,
    table: ItemTable,
    dragged: StoreItem,
    source: PartitionKey,
    target: PartitionKey,
    cascade: bool,
) -> PlanResult:
    next_store = store.snapshot()
    ref = ItemRef(table, dragged.id)
    calls: List[PersistCall] = []

    if table == ItemTable.ACTIONS:
        sort_order = next_sort_order(store, target, exclude_id=dragged.id)
        if target.group == LOOSE:
            tension_id = None
            area_id = _area_from_group(target.area)
        else:
            tension_id = target.group
            area_id = effective_area_id(store.get_tension(tension_id), store)

        action, location = next_store.remove(ref)
        area_changed = action.area_id != area_id
        action.tension_id = tension_id
        action.area_id = area_id
        action.sort_order = sort_order
        if tension_id is None:
            next_store.loose_actions.append(action)
        else:
            next_store.get_tension(tension_id).actions.append(action)

        calls.append(MoveItemCall(
            ItemTable.ACTIONS,
            item_id=action.id,
            fields={"tension_id": tension_id, "area_id": area_id, "sort_order": sort_order},
        ))
        if cascade and area_changed:
            calls.extend(_cascade_area(ItemTable.ACTIONS, action, area_id))
    else:
        area_id = _area_from_group(target.group)
        item = next_store.get(ref)
        item.area_id = area_id
        # A Tension without its own Area stays under its Visions' or Realities' Area
        landed = resolve_partition(item, next_store)
        if landed == source:
            return Noop("area is inherited")
        sort_order = next_sort_order(next_store, landed, exclude_id=item.id)
        item.sort_order = sort_order
        target = landed
        calls.append(MoveItemCall(
            table, item_id=item.id, fields={"area_id": area_id, "sort_order": sort_order}
        ))
        if cascade:
            calls.extend(_cascade_area(table, item, area_id))

    return ReorderPlan(
        kind=PlanKind.MOVE,
        ref=ref,
        next_store=next_store,
        persist_calls=calls,
        source=source,
        target=target,
        area_id=area_id if table == ItemTable.ACTIONS else _area_from_group(target.group),
    )


def plan_set_area(
    store: ItemStore,
    ref: ItemRef,
    area_id: Optional[str],
    remove_from_tension: bool = False,
    cascade: bool = False,
) -> PlanResult:
    """
    Plan an explicit Area assignment (an edit, not a drag).

    Dated items may be reassigned. An action inside a Tension keeps its
    Tension and only changes area_id unless remove_from_tension is set.
    """
    item = store.get(ref)
    if item is None:
        return Noop("item is not in the store")
    if ref.table == ItemTable.AREAS:
        return Noop("areas have no area")

    if ref.table == ItemTable.ACTIONS and item.tension_id is not None and not remove_from_tension:
        if item.area_id == area_id:
            return Noop("area is unchanged")
        next_store = store.snapshot()
        action = next_store.get(ref)
        action.area_id = area_id
        calls: List[PersistCall] = [
            UpdateItemCall(ItemTable.ACTIONS, item_id=action.id, fields={"area_id": area_id})
        ]
        if cascade:
            calls.extend(_cascade_area(ItemTable.ACTIONS, action, area_id))
        partition = resolve_partition(item, store)
        return ReorderPlan(
            kind=PlanKind.UPDATE,
            ref=ref,
            next_store=next_store,
            persist_calls=calls,
            source=partition,
            target=partition,
            area_id=area_id,
        )

    source = resolve_partition(item, store)
    target = _area_partition(ref.table, area_id, store)
    if source.undated() == target and item.area_id == area_id:
        return Noop("area is unchanged")
    return _plan_move(store, ref.table, item, source, target, cascade)


def plan_detach_action(
    store: ItemStore,
    action_id: str,
    clear_area: bool = False,
    cascade: bool = False,
) -> PlanResult:
    """
    Move an action out of its Tension into the loose group.

    The action keeps its last Area unless clear_area is set.
    """
    action = store.get_action(action_id)
    if action is None:
        return Noop("action is not in the store")
    if action.tension_id is None and not (clear_area and action.area_id is not None):
        return Noop("action is already loose")

    area_id = None if clear_area else action.area_id
    return plan_set_area(
        store, ItemRef(ItemTable.ACTIONS, action_id), area_id, remove_from_tension=True, cascade=cascade
    )
