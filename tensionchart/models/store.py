"""
Item store model for tensionchart.

The canonical in-memory collections of one chart. Store values are treated as
immutable snapshots: every change is computed on a copy from snapshot() and
swapped in as a whole.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from tensionchart.constants import LOOSE
from tensionchart.exceptions import NotFoundError
from tensionchart.models.base import Action, Area, ItemTable, Reality, Tension, Vision

StoreItem = Union[Area, Vision, Reality, Tension, Action]


@dataclass(frozen=True)
class ItemRef:
    """Identity of an item: its table plus its id."""

    table: ItemTable
    id: str

    @property
    def key(self) -> str:
        return f"{self.table.value}-{self.id}"


@dataclass(frozen=True)
class ItemLocation:
    """Where an item sits in the store.

    container is the owning tension id for actions inside a Tension,
    LOOSE for loose actions, and None for every other table.
    """

    table: ItemTable
    container: Optional[str]
    index: int


class ItemStore(BaseModel):
    """
    Canonical collections of one chart.

    - areas: Areas in display order
    - visions, realities: flat lists, ordering via sort_order/due_date
    - tensions: each owning its ordered actions
    - loose_actions: actions with no tension
    """

    chart_id: str
    areas: List[Area] = Field(default_factory=list)
    visions: List[Vision] = Field(default_factory=list)
    realities: List[Reality] = Field(default_factory=list)
    tensions: List[Tension] = Field(default_factory=list)
    loose_actions: List[Action] = Field(default_factory=list)

    def snapshot(self) -> "ItemStore":
        """Return a deep copy that can be changed without touching this store."""
        return self.model_copy(deep=True)

    # =========================================================================
    # Lookup
    # =========================================================================

    def get_area(self, area_id: Optional[str]) -> Optional[Area]:
        if area_id is None:
            return None
        for area in self.areas:
            if area.id == area_id:
                return area
        return None

    def get_tension(self, tension_id: Optional[str]) -> Optional[Tension]:
        if tension_id is None:
            return None
        for tension in self.tensions:
            if tension.id == tension_id:
                return tension
        return None

    def get_vision(self, vision_id: str) -> Optional[Vision]:
        return next((v for v in self.visions if v.id == vision_id), None)

    def get_reality(self, reality_id: str) -> Optional[Reality]:
        return next((r for r in self.realities if r.id == reality_id), None)

    def get_action(self, action_id: str) -> Optional[Action]:
        for action in self.iter_actions():
            if action.id == action_id:
                return action
        return None

    def iter_actions(self) -> Iterator[Action]:
        """Iterate loose actions first, then actions of each tension."""
        yield from self.loose_actions
        for tension in self.tensions:
            yield from tension.actions

    def items_of(self, table: ItemTable) -> List[StoreItem]:
        """All items of a table as a flat list."""
        if table == ItemTable.AREAS:
            return list(self.areas)
        if table == ItemTable.VISIONS:
            return list(self.visions)
        if table == ItemTable.REALITIES:
            return list(self.realities)
        if table == ItemTable.TENSIONS:
            return list(self.tensions)
        return list(self.iter_actions())

    def find(self, item_id: str) -> Optional[Tuple[ItemTable, StoreItem]]:
        """Find an item of any table by id."""
        for table in ItemTable:
            for item in self.items_of(table):
                if item.id == item_id:
                    return table, item
        return None

    def get(self, ref: ItemRef) -> Optional[StoreItem]:
        for item in self.items_of(ref.table):
            if item.id == ref.id:
                return item
        return None

    def action_meta(self) -> Dict[str, Tuple[Optional[str], Optional[str]]]:
        """Map action id to (tension_id, area_id)."""
        return {a.id: (a.tension_id, a.area_id) for a in self.iter_actions()}

    # =========================================================================
    # Structural edits (call on a snapshot, never on the live store)
    # =========================================================================

    def _container_list(self, table: ItemTable, container: Optional[str]) -> List:
        if table == ItemTable.AREAS:
            return self.areas
        if table == ItemTable.VISIONS:
            return self.visions
        if table == ItemTable.REALITIES:
            return self.realities
        if table == ItemTable.TENSIONS:
            return self.tensions
        if container is None or container == LOOSE:
            return self.loose_actions
        tension = self.get_tension(container)
        if tension is None:
            raise NotFoundError(f"Tension '{container}' not found.")
        return tension.actions

    def locate(self, ref: ItemRef) -> Optional[ItemLocation]:
        """Find the container and index an item currently occupies."""
        if ref.table == ItemTable.ACTIONS:
            for index, action in enumerate(self.loose_actions):
                if action.id == ref.id:
                    return ItemLocation(ref.table, LOOSE, index)
            for tension in self.tensions:
                for index, action in enumerate(tension.actions):
                    if action.id == ref.id:
                        return ItemLocation(ref.table, tension.id, index)
            return None

        for index, item in enumerate(self._container_list(ref.table, None)):
            if item.id == ref.id:
                return ItemLocation(ref.table, None, index)
        return None

    def remove(self, ref: ItemRef) -> Tuple[StoreItem, ItemLocation]:
        """Remove an item and report where it was.

        Raises:
            NotFoundError: If the item is not in the store.
        """
        location = self.locate(ref)
        if location is None:
            raise NotFoundError(f"{ref.table.value} item '{ref.id}' not found.")
        items = self._container_list(location.table, location.container)
        return items.pop(location.index), location

    def insert(self, item: StoreItem, location: ItemLocation) -> None:
        """Insert an item at a location, clamping the index to the container.

        A tension container that no longer exists falls back to the loose list.
        """
        container = location.container
        if (
            location.table == ItemTable.ACTIONS
            and container not in (None, LOOSE)
            and self.get_tension(container) is None
        ):
            container = LOOSE
            item.tension_id = None
        items = self._container_list(location.table, container)
        index = max(0, min(location.index, len(items)))
        items.insert(index, item)

    def append(self, item: StoreItem, container: Optional[str] = None) -> None:
        """Add an item at the end of its container (a tension id, LOOSE or None)."""
        items = self._container_list(item.item_table, container)
        items.append(item)

    def replace_id(self, ref: ItemRef, new_id: str) -> bool:
        """Swap an item's id (temp id to persisted id), updating references."""
        item = self.get(ref)
        if item is None:
            return False
        item.id = new_id
        if ref.table == ItemTable.TENSIONS:
            for action in item.actions:
                action.tension_id = new_id
        elif ref.table == ItemTable.VISIONS:
            for tension in self.tensions:
                tension.vision_ids = [new_id if v == ref.id else v for v in tension.vision_ids]
        elif ref.table == ItemTable.REALITIES:
            for tension in self.tensions:
                tension.reality_ids = [new_id if r == ref.id else r for r in tension.reality_ids]
        elif ref.table == ItemTable.AREAS:
            for table in (ItemTable.VISIONS, ItemTable.REALITIES, ItemTable.TENSIONS, ItemTable.ACTIONS):
                for other in self.items_of(table):
                    if other.area_id == ref.id:
                        other.area_id = new_id
        return True
