"""
Mutation synchronizer for tensionchart.

One entry point for every optimistic change: swap the live snapshot, issue the
persistence calls, and on failure put the captured snapshot back as a whole.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

from tensionchart.constants import MESSAGE_UPDATE_FAILED
from tensionchart.exceptions import PersistenceError
from tensionchart.managers.persistence import Persistence, PersistCall
from tensionchart.models.store import ItemStore
from tensionchart.signals import signal


class LiveStore:
    """
    Holds the snapshot the UI renders.

    The snapshot is only ever replaced as a whole; replace() has no await
    inside it, so no reader can observe a partially applied change.
    """

    def __init__(self, store: ItemStore) -> None:
        self._store = store

    @signal
    def store_changed(self, store: ItemStore) -> None:
        """Emitted after the live snapshot is replaced."""

    @property
    def current(self) -> ItemStore:
        return self._store

    def replace(self, store: ItemStore) -> None:
        self._store = store
        self.store_changed(store)


@dataclass
class MutationOutcome:
    """Result of applying one optimistic change."""

    ok: bool
    message: Optional[str] = None
    error: Optional[PersistenceError] = None
    failed_call: Optional[PersistCall] = None
    issued: List[PersistCall] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.ok


class MutationSynchronizer:
    """
    Applies planned store changes optimistically.

    Usage:
        sync = MutationSynchronizer(live, persistence)
        sync.mutation_failed.connect(lambda message: show_error(message))
        outcome = await sync.apply(plan.next_store, plan.persist_calls)

    Failure reverts to the snapshot captured immediately before that call.
    When two mutations overlap and the earlier one fails last, that revert can
    overwrite the later optimistic state; there are no versioned snapshots.
    """

    def __init__(self, live_store: LiveStore, persistence: Persistence, parallel: bool = False) -> None:
        """
        Args:
            live_store: The store the UI reads.
            persistence: Backing store collaborator.
            parallel: Issue the calls of one mutation concurrently instead of in order.
        """
        self.live_store = live_store
        self.persistence = persistence
        self.parallel = parallel

    @signal
    def mutation_failed(self, message: str) -> None:
        """Emitted once per reverted mutation with a user-facing message."""

    @signal
    def mutation_confirmed(self, store: ItemStore) -> None:
        """Emitted when every call of a mutation succeeded."""

    async def _issue_all(self, calls: List[PersistCall], issued: List[PersistCall]) -> None:
        if self.parallel:
            async def _one(call: PersistCall) -> None:
                issued.append(call)
                try:
                    await call.issue(self.persistence)
                except PersistenceError as e:
                    raise _CallFailed(call, e) from e

            results = await asyncio.gather(*(_one(call) for call in calls), return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            return

        for call in calls:
            issued.append(call)
            try:
                await call.issue(self.persistence)
            except PersistenceError as e:
                raise _CallFailed(call, e) from e

    async def apply(
        self,
        next_store: ItemStore,
        persist_calls: List[PersistCall],
        failure_message: Optional[str] = None,
    ) -> MutationOutcome:
        """
        Commit next_store optimistically and confirm it with the backing store.

        Args:
            next_store: Snapshot to show immediately.
            persist_calls: Calls that make the backing store agree.
            failure_message: Message carried by mutation_failed on revert.

        Returns:
            MutationOutcome; ok is False when the change was reverted.
        """
        previous = self.live_store.current
        self.live_store.replace(next_store)
        issued: List[PersistCall] = []

        try:
            await self._issue_all(persist_calls, issued)
        except _CallFailed as failure:
            self.live_store.replace(previous)
            message = failure_message or MESSAGE_UPDATE_FAILED
            self.mutation_failed(message)
            return MutationOutcome(
                ok=False,
                message=message,
                error=failure.error,
                failed_call=failure.call,
                issued=issued,
            )

        self.mutation_confirmed(next_store)
        return MutationOutcome(ok=True, issued=issued)


class _CallFailed(Exception):
    def __init__(self, call: PersistCall, error: PersistenceError) -> None:
        super().__init__(str(error))
        self.call = call
        self.error = error
