"""
File models for tensionchart.

Models representing the structure of JSON files in the data directory.
"""

from typing import Optional

from pydantic import BaseModel, Field

from tensionchart.constants import (
    DEFAULT_CASCADE_AREA_MOVES,
    DEFAULT_DATED_SORT_DESCENDING,
    DEFAULT_ERROR_NOTICE_SECONDS,
    DEFAULT_GRACE_SECONDS,
    DEFAULT_PERSIST_IN_PARALLEL,
    DEFAULT_SCROLL_RESTORE_SECONDS,
    DEFAULT_SUCCESS_NOTICE_SECONDS,
    DEFAULT_TEMP_ID_PREFIX,
)

from .store import ItemStore


class ChartFile(BaseModel):
    """Model for charts/<chart_id>.json.

    One chart: its title, the parent action it was telescoped from (if any)
    and the full item store.
    """

    schema_version: str = "1.0.0"
    title: str = ""
    parent_action_id: Optional[str] = None
    store: ItemStore

    @classmethod
    def empty(cls, chart_id: str, title: str = "") -> "ChartFile":
        return cls(title=title, store=ItemStore(chart_id=chart_id))


class ConfigFile(BaseModel):
    """Model for config.json file.

    Runtime settings for the optimistic engine.
    """

    schema_version: str = "1.0.0"

    # Deletion settings
    grace_seconds: float = DEFAULT_GRACE_SECONDS

    # Move settings
    cascade_area_moves: bool = DEFAULT_CASCADE_AREA_MOVES
    persist_in_parallel: bool = DEFAULT_PERSIST_IN_PARALLEL

    # Display settings
    dated_sort_descending: bool = DEFAULT_DATED_SORT_DESCENDING
    scroll_restore_seconds: float = DEFAULT_SCROLL_RESTORE_SECONDS
    success_notice_seconds: int = DEFAULT_SUCCESS_NOTICE_SECONDS
    error_notice_seconds: int = DEFAULT_ERROR_NOTICE_SECONDS

    # Identifier settings
    temp_id_prefix: str = Field(default=DEFAULT_TEMP_ID_PREFIX, min_length=1)
