"""
Deletion scheduler for tensionchart.

Deletes are reversible for a grace window: the item leaves the live store at
once, and the backing store delete is only issued when the window closes
without an undo.

Each pending deletion is keyed by item identity and runs its own timer task.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional

from tensionchart.constants import DEFAULT_GRACE_SECONDS, MESSAGE_DELETE_FAILED
from tensionchart.exceptions import PersistenceError
from tensionchart.managers.mutation_synchronizer import LiveStore
from tensionchart.managers.persistence import Persistence
from tensionchart.models.store import ItemLocation, ItemRef, StoreItem
from tensionchart.signals import signal


@dataclass
class PendingDeletion:
    """An armed deletion: the removed item and where it sat."""

    ref: ItemRef
    item: StoreItem
    location: ItemLocation
    task: Optional["asyncio.Task[bool]"] = None
    committing: bool = False


class DeletionHandle:
    """Returned by schedule_delete; cancel() undoes the deletion."""

    def __init__(self, scheduler: "DeletionScheduler", ref: ItemRef) -> None:
        self._scheduler = scheduler
        self.ref = ref

    def cancel(self) -> bool:
        return self._scheduler.undo(self.ref)

    @property
    def pending(self) -> bool:
        return self._scheduler.is_pending(self.ref)


class DeletionScheduler:
    """
    Manages reversible deletions.

    States per item: armed (removed from view, timer running), undone (timer
    cancelled, item restored), committed (backing store delete issued).

    Usage:
        scheduler = DeletionScheduler(live, persistence, grace_seconds=15)
        handle = scheduler.schedule_delete(ItemRef(ItemTable.VISIONS, vision_id))
        handle.cancel()  # or scheduler.undo(ref)
    """

    def __init__(
        self,
        live_store: LiveStore,
        persistence: Persistence,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
    ) -> None:
        self.live_store = live_store
        self.persistence = persistence
        self.grace_seconds = grace_seconds
        self._pending: Dict[ItemRef, PendingDeletion] = {}

    @signal
    def deletion_armed(self, ref: ItemRef, item: object) -> None:
        """Emitted when an item is hidden and its timer starts."""

    @signal
    def deletion_undone(self, ref: ItemRef, item: object) -> None:
        """Emitted when an armed deletion is undone."""

    @signal
    def delete_committed(self, ref: ItemRef, item: object) -> None:
        """Emitted when the backing store accepted the delete."""

    @signal
    def delete_failed(self, ref: ItemRef, message: str) -> None:
        """Emitted when the backing store rejected the delete and the item was restored."""

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def pending(self) -> List[ItemRef]:
        return list(self._pending)

    def is_pending(self, ref: ItemRef) -> bool:
        return ref in self._pending

    # =========================================================================
    # Transitions
    # =========================================================================

    def schedule_delete(self, ref: ItemRef) -> DeletionHandle:
        """
        Hide an item and arm its deletion timer.

        Re-arming an item that is already armed restarts its timer; only one
        delete is ever committed for it.

        Must be called from inside a running event loop.

        Raises:
            NotFoundError: If the item is neither in the store nor armed.
        """
        record = self._pending.get(ref)
        if record is not None:
            if record.committing:
                return DeletionHandle(self, ref)
            record.task.cancel()
        else:
            store = self.live_store.current.snapshot()
            item, location = store.remove(ref)
            self.live_store.replace(store)
            record = PendingDeletion(ref=ref, item=item, location=location)

        record.task = asyncio.get_running_loop().create_task(self._run(record))
        self._pending[ref] = record
        self.deletion_armed(ref, record.item)
        return DeletionHandle(self, ref)

    def undo(self, ref: ItemRef) -> bool:
        """
        Restore an armed item to its container, index and sort_order.

        Returns:
            True if the deletion was undone, False if nothing was armed or the
            delete is already being committed.
        """
        record = self._pending.get(ref)
        if record is None or record.committing:
            return False

        record.task.cancel()
        del self._pending[ref]
        self._restore(record)
        self.deletion_undone(ref, record.item)
        return True

    async def commit_all(self) -> None:
        """Commit every armed deletion now instead of waiting for its timer."""
        records = [r for r in self._pending.values() if not r.committing]
        for record in records:
            record.task.cancel()
        await asyncio.gather(*(self._commit(record) for record in records))

    async def join(self) -> None:
        """Wait until every armed deletion is committed, failed or undone."""
        while self._pending:
            tasks = [r.task for r in self._pending.values() if r.task is not None]
            await asyncio.gather(*tasks, return_exceptions=True)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _run(self, record: PendingDeletion) -> bool:
        await asyncio.sleep(self.grace_seconds)
        return await self._commit(record)

    async def _commit(self, record: PendingDeletion) -> bool:
        ref = record.ref
        record.committing = True
        try:
            await self.persistence.delete_item(ref.table, ref.id)
        except PersistenceError:
            self._discard(record)
            self._restore(record)
            self.delete_failed(ref, MESSAGE_DELETE_FAILED)
            return False

        self._discard(record)
        self.delete_committed(ref, record.item)
        return True

    def _discard(self, record: PendingDeletion) -> None:
        if self._pending.get(record.ref) is record:
            del self._pending[record.ref]

    def _restore(self, record: PendingDeletion) -> None:
        store = self.live_store.current.snapshot()
        if store.get(record.ref) is None:
            store.insert(record.item.model_copy(deep=True), record.location)
            self.live_store.replace(store)
