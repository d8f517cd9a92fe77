"""
Item models for tensionchart.

Visions, Realities and Actions share the BaseItem shape. Tensions own an
ordered list of Actions and link to Visions and Realities. Areas are the
user-defined grouping tags every other item can reference.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, PrivateAttr, field_validator


class ItemTable(str, Enum):
    """Backing tables, one per item kind."""

    AREAS = "areas"
    VISIONS = "visions"
    REALITIES = "realities"
    TENSIONS = "tensions"
    ACTIONS = "actions"


class TensionStatus(str, Enum):
    """Lifecycle of a Tension."""

    ACTIVE = "active"
    REVIEW_NEEDED = "review_needed"
    RESOLVED = "resolved"


class ActionStatus(str, Enum):
    """Valid status values for Actions."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    PENDING = "pending"
    CANCELED = "canceled"


def new_id() -> str:
    return str(uuid.uuid4())


class Area(BaseModel):
    """User-defined grouping tag. Ordered among Areas by sort_order."""

    id: str = Field(default_factory=new_id)
    chart_id: str
    name: str
    color: str = "gray"
    sort_order: int = 0
    _item_table: ItemTable = PrivateAttr(default=ItemTable.AREAS)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the name is not blank."""
        if not v or not v.strip():
            raise ValueError("Area name is required")
        return v.strip()

    @property
    def item_table(self) -> ItemTable:
        return self._item_table


class BaseItem(BaseModel):
    """
    Common shape for Visions, Realities and Actions.

    Common fields:
    - id: Unique identifier (a temp- id until the backing store confirms it)
    - chart_id: Owning chart
    - area_id: Optional Area reference (None means uncategorized)
    - due_date: Optional due date; dated items are ordered by date, not sort_order
    - sort_order: Ordering key, meaningful only within its partition
    - description, timestamps

    Subclasses override _item_table to name their backing table.
    """

    id: str = Field(default_factory=new_id)
    chart_id: str
    area_id: Optional[str] = None
    due_date: Optional[date] = None
    sort_order: int = 0
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None
    _item_table: ItemTable = PrivateAttr(default=ItemTable.VISIONS)

    @property
    def item_table(self) -> ItemTable:
        """Get the backing table of this item."""
        return self._item_table

    @property
    def is_dated(self) -> bool:
        return self.due_date is not None


class Vision(BaseItem):
    """Vision model - a desired end state."""

    content: str = ""
    assignee: Optional[str] = None
    target_date: Optional[date] = None
    is_locked: bool = False
    _item_table: ItemTable = PrivateAttr(default=ItemTable.VISIONS)


class Reality(BaseItem):
    """Reality model - an observation of the current state."""

    content: str = ""
    is_locked: bool = False
    _item_table: ItemTable = PrivateAttr(default=ItemTable.REALITIES)


class Action(BaseItem):
    """Action model - a step that closes a Tension.

    An Action with no tension_id is "loose".
    """

    title: str = ""
    status: ActionStatus = ActionStatus.TODO
    is_completed: bool = False
    assignee: Optional[str] = None
    tension_id: Optional[str] = None
    child_chart_id: Optional[str] = None
    _item_table: ItemTable = PrivateAttr(default=ItemTable.ACTIONS)

    @property
    def is_loose(self) -> bool:
        return self.tension_id is None

    @property
    def is_done(self) -> bool:
        return self.is_completed or self.status == ActionStatus.DONE


class Tension(BaseModel):
    """
    Tension model - the gap between linked Visions and Realities.

    Owns an ordered list of Actions. area_id is optional: without it the
    Tension is grouped under the Area inherited from its links.
    """

    id: str = Field(default_factory=new_id)
    chart_id: str
    title: str
    description: Optional[str] = None
    status: TensionStatus = TensionStatus.ACTIVE
    area_id: Optional[str] = None
    sort_order: int = 0
    vision_ids: List[str] = Field(default_factory=list)
    reality_ids: List[str] = Field(default_factory=list)
    actions: List[Action] = Field(default_factory=list)
    _item_table: ItemTable = PrivateAttr(default=ItemTable.TENSIONS)

    @property
    def item_table(self) -> ItemTable:
        return self._item_table

    @property
    def is_resolved(self) -> bool:
        return self.status == TensionStatus.RESOLVED

    def get_action(self, action_id: str) -> Optional[Action]:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None
