"""
Managers for tensionchart.

This package contains focused modules that handle specific aspects of the chart engine:
- partition_resolver: Ordering partitions and Area grouping
- reorder_engine: Drag-end events to store change plans
- persistence: Backing store contract and call descriptors
- MutationSynchronizer: Optimistic apply with full revert on failure
- DeletionScheduler: Deletes with an undo window
- CRUDManager: Creates, edits, links and Area assignment
- ChartStorage / JsonPersistence: JSON files in the .tensionchart/ folder
- ScrollAnchor: Caller-owned scroll restore context
- EventBus: Event-driven architecture for user-facing notices
"""

from tensionchart.managers.partition_resolver import (
    AreaGroup,
    PartitionKey,
    StructuredData,
    effective_area_id,
    resolve_partition,
    structure_by_area,
)
from tensionchart.managers.persistence import (
    ChartAreaCall,
    DeleteItemCall,
    MoveItemCall,
    PersistCall,
    Persistence,
    SetOrderCall,
    UpdateItemCall,
)
from tensionchart.managers.reorder_engine import (
    DragEndEvent,
    DropTargetMeta,
    DropZone,
    Noop,
    PlanKind,
    ReorderPlan,
    plan_detach_action,
    plan_reorder,
    plan_set_area,
)
from tensionchart.managers.mutation_synchronizer import (
    LiveStore,
    MutationOutcome,
    MutationSynchronizer,
)
from tensionchart.managers.deletion_scheduler import DeletionHandle, DeletionScheduler
from tensionchart.managers.crud_manager import CRUDManager
from tensionchart.managers.storage_manager import ChartStorage
from tensionchart.managers.json_persistence import JsonPersistence
from tensionchart.managers.scroll_anchor import ScrollAnchor
from tensionchart.managers.events import (
    EventBus,
    Event,
    ItemEvent,
    EventType,
    EventListener,
    NotificationListener,
    get_event_bus,
    publish_event,
    subscribe_listener,
)
from tensionchart.exceptions import StorageError

__all__ = [
    "AreaGroup",
    "PartitionKey",
    "StructuredData",
    "effective_area_id",
    "resolve_partition",
    "structure_by_area",
    "ChartAreaCall",
    "DeleteItemCall",
    "MoveItemCall",
    "PersistCall",
    "Persistence",
    "SetOrderCall",
    "UpdateItemCall",
    "DragEndEvent",
    "DropTargetMeta",
    "DropZone",
    "Noop",
    "PlanKind",
    "ReorderPlan",
    "plan_detach_action",
    "plan_reorder",
    "plan_set_area",
    "LiveStore",
    "MutationOutcome",
    "MutationSynchronizer",
    "DeletionHandle",
    "DeletionScheduler",
    "CRUDManager",
    "ChartStorage",
    "StorageError",
    "JsonPersistence",
    "ScrollAnchor",
    "EventBus",
    "Event",
    "ItemEvent",
    "EventType",
    "EventListener",
    "NotificationListener",
    "get_event_bus",
    "publish_event",
    "subscribe_listener",
]
