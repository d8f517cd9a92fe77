"""
JSON file backing store for tensionchart.

Implements the Persistence contract on top of ChartStorage. Each call loads
the chart, validates the whole change, and only then writes the file, so a
rejected call leaves the file untouched.
"""

from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from tensionchart.constants import LOOSE
from tensionchart.exceptions import PersistenceError
from tensionchart.managers.persistence import Persistence
from tensionchart.managers.storage_manager import ChartStorage
from tensionchart.models.base import Action, Area, ItemTable, Reality, Tension, Vision, new_id
from tensionchart.models.files import ChartFile
from tensionchart.models.store import ItemRef, ItemStore, StoreItem

TABLE_MODELS: Dict[ItemTable, Type[BaseModel]] = {
    ItemTable.AREAS: Area,
    ItemTable.VISIONS: Vision,
    ItemTable.REALITIES: Reality,
    ItemTable.TENSIONS: Tension,
    ItemTable.ACTIONS: Action,
}


class JsonPersistence(Persistence):
    """
    Persistence backed by charts/<chart_id>.json.

    Usage:
        storage = ChartStorage(Path(".tensionchart"))
        persistence = JsonPersistence(storage, "main")
        new_id = await persistence.create_item(ItemTable.VISIONS, {"content": "Ship v1"})
    """

    def __init__(self, storage: ChartStorage, chart_id: str) -> None:
        self.storage = storage
        self.chart_id = chart_id

    def _load(self, chart_id: Optional[str] = None) -> ChartFile:
        return self.storage.load_chart(chart_id or self.chart_id)

    def _find(self, store: ItemStore, table: ItemTable, item_id: str) -> StoreItem:
        item = store.get(ItemRef(table, item_id))
        if item is None:
            raise PersistenceError(f"{table.value} item '{item_id}' does not exist")
        return item

    def _validated(self, item: StoreItem, fields: Dict[str, Any]) -> BaseModel:
        unknown = set(fields) - set(type(item).model_fields)
        if unknown:
            raise PersistenceError(
                f"Unknown fields for {item.item_table.value}: {', '.join(sorted(unknown))}"
            )
        try:
            return type(item).model_validate({**item.model_dump(), **fields})
        except PydanticValidationError as e:
            raise PersistenceError(f"Invalid fields for {item.item_table.value}: {e}")

    async def set_order(
        self,
        table: ItemTable,
        items: List[Dict[str, Any]],
        group_filter: Dict[str, Optional[str]],
    ) -> None:
        chart = self._load()
        store = chart.store

        if group_filter.get("chart_id", store.chart_id) != store.chart_id:
            raise PersistenceError(f"Order update targets another chart: {group_filter['chart_id']}")

        targets = []
        for entry in items:
            item = self._find(store, table, entry["id"])
            if "tension_id" in group_filter and item.tension_id != group_filter["tension_id"]:
                raise PersistenceError(
                    f"Action '{item.id}' is outside the group {group_filter['tension_id'] or LOOSE}"
                )
            targets.append((item, int(entry["sort_order"])))

        for item, sort_order in targets:
            item.sort_order = sort_order
        self.storage.save_chart(chart)

    async def move_item(self, table: ItemTable, item_id: str, fields: Dict[str, Any]) -> None:
        chart = self._load()
        store = chart.store
        item = self._find(store, table, item_id)
        validated = self._validated(item, fields)

        if table == ItemTable.ACTIONS and "tension_id" in fields and fields["tension_id"] != item.tension_id:
            tension_id = fields["tension_id"]
            if tension_id is not None and store.get_tension(tension_id) is None:
                raise PersistenceError(f"Tension '{tension_id}' does not exist")
            item, _ = store.remove(ItemRef(table, item_id))
            for name in fields:
                setattr(item, name, getattr(validated, name))
            store.append(item, tension_id if tension_id is not None else LOOSE)
        else:
            for name in fields:
                setattr(item, name, getattr(validated, name))

        self.storage.save_chart(chart)

    async def delete_item(self, table: ItemTable, item_id: str) -> None:
        chart = self._load()
        store = chart.store
        ref = ItemRef(table, item_id)
        if store.locate(ref) is None:
            return

        store.remove(ref)
        if table == ItemTable.VISIONS:
            for tension in store.tensions:
                tension.vision_ids = [v for v in tension.vision_ids if v != item_id]
        elif table == ItemTable.REALITIES:
            for tension in store.tensions:
                tension.reality_ids = [r for r in tension.reality_ids if r != item_id]
        self.storage.save_chart(chart)

    async def create_item(self, table: ItemTable, fields: Dict[str, Any]) -> str:
        chart = self._load()
        store = chart.store
        item_id = new_id()

        try:
            item = TABLE_MODELS[table].model_validate(
                {**fields, "id": item_id, "chart_id": store.chart_id}
            )
        except PydanticValidationError as e:
            raise PersistenceError(f"Invalid {table.value} item: {e}")

        container = None
        if table == ItemTable.ACTIONS:
            if item.tension_id is not None and store.get_tension(item.tension_id) is None:
                raise PersistenceError(f"Tension '{item.tension_id}' does not exist")
            container = item.tension_id or LOOSE

        store.append(item, container)
        self.storage.save_chart(chart)
        return item_id

    async def update_item(self, table: ItemTable, item_id: str, fields: Dict[str, Any]) -> None:
        chart = self._load()
        item = self._find(chart.store, table, item_id)
        validated = self._validated(item, fields)
        for name in fields:
            setattr(item, name, getattr(validated, name))
        self.storage.save_chart(chart)

    async def assign_chart_area(self, chart_id: str, area_id: Optional[str]) -> None:
        if not self.storage.chart_exists(chart_id):
            return
        chart = self._load(chart_id)
        for vision in chart.store.visions:
            vision.area_id = area_id
        self.storage.save_chart(chart)
