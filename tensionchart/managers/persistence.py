"""
Persistence contract for tensionchart.

The backing store is an external collaborator. The engine only describes the
calls it needs (PersistCall descriptors) and hands them to a Persistence
implementation. Implementations raise PersistenceError when a call is not
accepted; a call either succeeds as a whole or fails as a whole.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tensionchart.models.base import ItemTable


class Persistence(ABC):
    """Backing store operations used by the engine."""

    @abstractmethod
    async def set_order(
        self,
        table: ItemTable,
        items: List[Dict[str, Any]],
        group_filter: Dict[str, Optional[str]],
    ) -> None:
        """Bulk-update ordering keys.

        Args:
            table: Table holding the items.
            items: [{"id": ..., "sort_order": ...}, ...]
            group_filter: Field values every updated row must match.
        """

    @abstractmethod
    async def move_item(self, table: ItemTable, item_id: str, fields: Dict[str, Any]) -> None:
        """Update group-defining fields (area_id, tension_id) and sort_order atomically."""

    @abstractmethod
    async def delete_item(self, table: ItemTable, item_id: str) -> None:
        """Delete an item. Deleting a missing item succeeds."""

    @abstractmethod
    async def create_item(self, table: ItemTable, fields: Dict[str, Any]) -> str:
        """Create an item and return its persisted id."""

    @abstractmethod
    async def update_item(self, table: ItemTable, item_id: str, fields: Dict[str, Any]) -> None:
        """Update plain fields of an item."""

    @abstractmethod
    async def assign_chart_area(self, chart_id: str, area_id: Optional[str]) -> None:
        """Set the Area of every Vision of a (child) chart."""


# =============================================================================
# Call descriptors
# =============================================================================


@dataclass
class PersistCall(ABC):
    """A single call to hand to a Persistence implementation."""

    table: ItemTable

    @abstractmethod
    async def issue(self, persistence: Persistence) -> None:
        """Issue this call against the backing store."""

    def describe(self) -> str:
        return f"{self.__class__.__name__}({self.table.value})"


@dataclass
class SetOrderCall(PersistCall):
    items: List[Dict[str, Any]] = field(default_factory=list)
    group_filter: Dict[str, Optional[str]] = field(default_factory=dict)

    async def issue(self, persistence: Persistence) -> None:
        await persistence.set_order(self.table, self.items, self.group_filter)

    @property
    def order(self) -> Dict[str, int]:
        return {entry["id"]: entry["sort_order"] for entry in self.items}


@dataclass
class MoveItemCall(PersistCall):
    item_id: str = ""
    fields: Dict[str, Any] = field(default_factory=dict)

    async def issue(self, persistence: Persistence) -> None:
        await persistence.move_item(self.table, self.item_id, self.fields)


@dataclass
class UpdateItemCall(PersistCall):
    item_id: str = ""
    fields: Dict[str, Any] = field(default_factory=dict)

    async def issue(self, persistence: Persistence) -> None:
        await persistence.update_item(self.table, self.item_id, self.fields)


@dataclass
class DeleteItemCall(PersistCall):
    item_id: str = ""

    async def issue(self, persistence: Persistence) -> None:
        await persistence.delete_item(self.table, self.item_id)


@dataclass
class ChartAreaCall(PersistCall):
    """Cascade hop onto a child chart's Visions."""

    table: ItemTable = ItemTable.VISIONS
    chart_id: str = ""
    area_id: Optional[str] = None

    async def issue(self, persistence: Persistence) -> None:
        await persistence.assign_chart_area(self.chart_id, self.area_id)
