"""
Test fixtures for the tensionchart test suite.

Provides:
- Temporary directory fixtures (isolated from the working .tensionchart/)
- A store builder for creating charts with fixed ids
- A recording persistence fake that fails on demand
- Event bus and config resets between tests
"""

import asyncio
import shutil
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, Dict, Generator, Iterable, List, Optional, Set, Tuple

import pytest

from tensionchart.constants import get_config_manager, reset_config_manager
from tensionchart.exceptions import PersistenceError
from tensionchart.managers import Persistence, get_event_bus
from tensionchart.models.base import (
    Action,
    ActionStatus,
    Area,
    ItemTable,
    Reality,
    Tension,
    Vision,
)
from tensionchart.models.store import ItemStore


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test isolation.

    Ensures tests don't modify a real .tensionchart/ directory.
    """
    temp_path = Path(tempfile.mkdtemp(prefix="tchart_test_"))
    yield temp_path
    # Cleanup
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def data_dir(temp_dir: Path) -> Path:
    """Path of a (not yet created) data directory inside the temp dir."""
    return temp_dir / ".tensionchart"


@pytest.fixture(autouse=True)
def reset_event_bus():
    """Reset event bus before each test."""
    bus = get_event_bus()
    bus.clear()
    yield
    bus.clear()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path):
    """Point the config singleton at an empty directory so defaults apply."""
    get_config_manager(reset=True, data_dir=tmp_path / "no-config")
    yield
    reset_config_manager()


# =============================================================================
# Store Builder
# =============================================================================


class StoreBuilder:
    """Helper class for building item stores with fixed ids."""

    def __init__(self, chart_id: str = "chart-1") -> None:
        self.store = ItemStore(chart_id=chart_id)

    def area(self, id: str, name: Optional[str] = None, sort_order: int = 0) -> "StoreBuilder":
        self.store.areas.append(
            Area(id=id, chart_id=self.store.chart_id, name=name or id, sort_order=sort_order)
        )
        return self

    def vision(
        self,
        id: str,
        area_id: Optional[str] = None,
        sort_order: int = 0,
        due_date: Optional[date] = None,
        content: Optional[str] = None,
    ) -> "StoreBuilder":
        self.store.visions.append(
            Vision(
                id=id,
                chart_id=self.store.chart_id,
                area_id=area_id,
                sort_order=sort_order,
                due_date=due_date,
                content=content or id,
            )
        )
        return self

    def reality(
        self,
        id: str,
        area_id: Optional[str] = None,
        sort_order: int = 0,
        due_date: Optional[date] = None,
    ) -> "StoreBuilder":
        self.store.realities.append(
            Reality(
                id=id,
                chart_id=self.store.chart_id,
                area_id=area_id,
                sort_order=sort_order,
                due_date=due_date,
                content=id,
            )
        )
        return self

    def tension(
        self,
        id: str,
        area_id: Optional[str] = None,
        sort_order: int = 0,
        vision_ids: Iterable[str] = (),
        reality_ids: Iterable[str] = (),
        title: Optional[str] = None,
    ) -> "StoreBuilder":
        self.store.tensions.append(
            Tension(
                id=id,
                chart_id=self.store.chart_id,
                title=title or id,
                area_id=area_id,
                sort_order=sort_order,
                vision_ids=list(vision_ids),
                reality_ids=list(reality_ids),
            )
        )
        return self

    def action(
        self,
        id: str,
        tension_id: Optional[str] = None,
        area_id: Optional[str] = None,
        sort_order: int = 0,
        due_date: Optional[date] = None,
        child_chart_id: Optional[str] = None,
        status: ActionStatus = ActionStatus.TODO,
    ) -> "StoreBuilder":
        action = Action(
            id=id,
            chart_id=self.store.chart_id,
            title=id,
            tension_id=tension_id,
            area_id=area_id,
            sort_order=sort_order,
            due_date=due_date,
            child_chart_id=child_chart_id,
            status=status,
            is_completed=status == ActionStatus.DONE,
        )
        if tension_id is None:
            self.store.loose_actions.append(action)
        else:
            self.store.get_tension(tension_id).actions.append(action)
        return self

    def build(self) -> ItemStore:
        return self.store


@pytest.fixture
def builder() -> StoreBuilder:
    """Provide a fresh store builder."""
    return StoreBuilder()


# =============================================================================
# Persistence Fake
# =============================================================================


class RecordingPersistence(Persistence):
    """
    Persistence that records every call.

    - fail_on: method names that raise PersistenceError
    - fail_ids: item ids whose calls raise PersistenceError
    - gates: method name -> asyncio.Event the call waits on before answering
    """

    def __init__(self, fail_on: Iterable[str] = ()) -> None:
        self.calls: List[Tuple[str, Any, Optional[str], Any]] = []
        self.fail_on: Set[str] = set(fail_on)
        self.fail_ids: Set[str] = set()
        self.gates: Dict[str, asyncio.Event] = {}
        self._created = 0

    async def _record(self, method: str, table: Any, item_id: Optional[str] = None, payload: Any = None) -> None:
        self.calls.append((method, table, item_id, payload))
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if method in self.fail_on or (item_id is not None and item_id in self.fail_ids):
            raise PersistenceError(f"{method} rejected")

    def calls_of(self, method: str) -> List[Tuple[str, Any, Optional[str], Any]]:
        return [call for call in self.calls if call[0] == method]

    async def set_order(self, table, items, group_filter) -> None:
        await self._record("set_order", table, None, {"items": items, "group_filter": group_filter})

    async def move_item(self, table, item_id, fields) -> None:
        await self._record("move_item", table, item_id, fields)

    async def delete_item(self, table, item_id) -> None:
        await self._record("delete_item", table, item_id)

    async def create_item(self, table, fields) -> str:
        await self._record("create_item", table, None, fields)
        self._created += 1
        return f"real-{self._created}"

    async def update_item(self, table, item_id, fields) -> None:
        await self._record("update_item", table, item_id, fields)

    async def assign_chart_area(self, chart_id, area_id) -> None:
        await self._record("assign_chart_area", ItemTable.VISIONS, chart_id, area_id)


@pytest.fixture
def persistence() -> RecordingPersistence:
    """Provide a recording persistence fake."""
    return RecordingPersistence()
