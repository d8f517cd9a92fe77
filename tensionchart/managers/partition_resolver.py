"""
Partition resolution for tensionchart.

A partition is the (table, group, due bucket) scope inside which ordering keys
are unique and meaningful. Everything here is pure: the store is read, never
changed, and absent references resolve to the "uncategorized" or "loose"
sentinel groups instead of raising.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from tensionchart.constants import DATED, LOOSE, UNCATEGORIZED, UNDATED
from tensionchart.models.base import Action, Area, ItemTable, Tension
from tensionchart.models.store import ItemStore, StoreItem
from tensionchart.utils import split_items_by_date


@dataclass(frozen=True)
class PartitionKey:
    """
    Ordering scope of an item.

    - table: backing table
    - group: area id, tension id, or a sentinel (UNCATEGORIZED, LOOSE, chart id for areas)
    - due_bucket: DATED or UNDATED for items carrying a due date, None otherwise
    - area: Area of a loose action (loose actions are grouped per Area)
    """

    table: ItemTable
    group: str
    due_bucket: Optional[str] = None
    area: Optional[str] = None

    @property
    def is_dated(self) -> bool:
        return self.due_bucket == DATED

    def undated(self) -> "PartitionKey":
        """The undated bucket of the same group."""
        if self.due_bucket is None:
            return self
        return replace(self, due_bucket=UNDATED)

    def describe(self) -> str:
        parts = [self.table.value, self.group]
        if self.area is not None:
            parts.append(self.area)
        if self.due_bucket is not None:
            parts.append(self.due_bucket)
        return "/".join(parts)


def known_area(area_id: Optional[str], store: ItemStore) -> Optional[str]:
    """Return area_id if it names an existing Area, else None."""
    if area_id is not None and store.get_area(area_id) is not None:
        return area_id
    return None


def area_group(area_id: Optional[str], store: ItemStore) -> str:
    """Group name for an Area reference: the id, or UNCATEGORIZED."""
    return known_area(area_id, store) or UNCATEGORIZED


def effective_area_id(tension: Tension, store: ItemStore) -> Optional[str]:
    """
    The Area a Tension is grouped under.

    Its own area_id when set; otherwise the first non-null Area of its linked
    Visions, then of its linked Realities. Read-only derived state.
    """
    if tension.area_id:
        return tension.area_id

    for vision_id in tension.vision_ids:
        vision = store.get_vision(vision_id)
        if vision is not None and vision.area_id:
            return vision.area_id

    for reality_id in tension.reality_ids:
        reality = store.get_reality(reality_id)
        if reality is not None and reality.area_id:
            return reality.area_id

    return None


def _due_bucket(item: Any) -> str:
    return DATED if getattr(item, "due_date", None) is not None else UNDATED


def resolve_partition(item: StoreItem, store: ItemStore) -> PartitionKey:
    """
    Determine the ordering partition of an item.

    Args:
        item: Any store item.
        store: Store giving Tension/Area membership context.

    Returns:
        The item's PartitionKey.
    """
    if isinstance(item, Area):
        return PartitionKey(ItemTable.AREAS, store.chart_id)

    if isinstance(item, Tension):
        return PartitionKey(ItemTable.TENSIONS, area_group(effective_area_id(item, store), store))

    if isinstance(item, Action):
        if item.tension_id is not None and store.get_tension(item.tension_id) is not None:
            return PartitionKey(ItemTable.ACTIONS, item.tension_id, _due_bucket(item))
        return PartitionKey(
            ItemTable.ACTIONS, LOOSE, _due_bucket(item), area=area_group(item.area_id, store)
        )

    return PartitionKey(item.item_table, area_group(item.area_id, store), _due_bucket(item))


def partition_members(
    store: ItemStore, key: PartitionKey, descending: bool = False
) -> List[StoreItem]:
    """
    Members of a partition in display order.

    Undated and dateless partitions order by sort_order (ties keep store
    order); dated partitions order by due date only.
    """
    members = [
        item for item in store.items_of(key.table) if resolve_partition(item, store) == key
    ]
    if key.is_dated:
        dated, _ = split_items_by_date(members, descending=descending)
        return dated
    return sorted(members, key=lambda item: item.sort_order)


def max_sort_order(store: ItemStore, key: PartitionKey, exclude_id: Optional[str] = None) -> Optional[int]:
    """Largest ordering key in a partition, or None when it is empty."""
    orders = [
        item.sort_order for item in partition_members(store, key) if item.id != exclude_id
    ]
    return max(orders) if orders else None


def next_sort_order(store: ItemStore, key: PartitionKey, exclude_id: Optional[str] = None) -> int:
    """Append position for a partition: max + 1, or 1 when empty."""
    current = max_sort_order(store, key, exclude_id)
    return 1 if current is None else current + 1


def group_filter(store: ItemStore, key: PartitionKey) -> Dict[str, Optional[str]]:
    """Filter the backing store applies to a bulk order update of a partition."""
    filters: Dict[str, Optional[str]] = {"chart_id": store.chart_id}
    if key.table == ItemTable.ACTIONS:
        filters["tension_id"] = None if key.group == LOOSE else key.group
    return filters


# =============================================================================
# Area grouping
# =============================================================================


@dataclass
class AreaGroup:
    """Tensions and loose actions displayed under one Area."""

    area: Optional[Area]
    tensions: List[Tension] = field(default_factory=list)
    orphaned_actions: List[Action] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.area.name if self.area else UNCATEGORIZED


@dataclass
class StructuredData:
    """Every Area group in Area order, plus the uncategorized group."""

    categorized: List[AreaGroup]
    uncategorized: AreaGroup

    def all_groups(self) -> List[AreaGroup]:
        return [*self.categorized, self.uncategorized]


def _ordered_actions(actions: List[Action], descending: bool) -> List[Action]:
    dated, undated = split_items_by_date(actions, descending=descending)
    return [*dated, *undated]


def structure_by_area(store: ItemStore, descending: bool = False) -> StructuredData:
    """
    Group Tensions (by effective Area) and loose actions (by their Area).

    Actions inside a Tension stay with their Tension; loose actions are the
    group's orphaned actions.
    """
    groups: Dict[str, AreaGroup] = {
        area.id: AreaGroup(area=area) for area in sorted(store.areas, key=lambda a: a.sort_order)
    }
    uncategorized = AreaGroup(area=None)

    def _group_for(area_id: Optional[str]) -> AreaGroup:
        known = known_area(area_id, store)
        return groups[known] if known else uncategorized

    for tension in sorted(store.tensions, key=lambda t: t.sort_order):
        _group_for(effective_area_id(tension, store)).tensions.append(tension)

    for group in [*groups.values(), uncategorized]:
        area_id = group.area.id if group.area else None
        members = [a for a in store.loose_actions if known_area(a.area_id, store) == area_id]
        group.orphaned_actions = _ordered_actions(members, descending)

    return StructuredData(categorized=list(groups.values()), uncategorized=uncategorized)


def ordered_tension_actions(tension: Tension, descending: bool = False) -> List[Action]:
    """A Tension's actions in display order: dated first, then undated."""
    return _ordered_actions(tension.actions, descending)
