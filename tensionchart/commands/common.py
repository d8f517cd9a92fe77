"""
Shared helpers for tensionchart commands.

Opening a ChartCore from the click context, running its coroutines, and
resolving the short ids and Area names users type.
"""
import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import click

from tensionchart.constants import DEFAULT_CHART_ID, UNCATEGORIZED
from tensionchart.core import ChartCore
from tensionchart.exceptions import (
    InvalidOperationError,
    NotFoundError,
    TensionChartError,
    ValidationError,
)
from tensionchart.models.base import ItemTable
from tensionchart.models.store import ItemRef
from tensionchart.utils import parse_date

SHORT_ID_LENGTH = 8

NO_AREA_VALUES = ("none", UNCATEGORIZED)


def data_dir_of(ctx: click.Context) -> Optional[Path]:
    return ctx.obj.get("data_dir") if ctx.obj else None


def open_core(ctx: click.Context, **kwargs: Any) -> ChartCore:
    """Create a ChartCore for the chart and data directory chosen on the command line."""
    obj = ctx.obj or {}
    return ChartCore(
        chart_id=obj.get("chart_id", DEFAULT_CHART_ID),
        data_dir=obj.get("data_dir"),
        quiet=obj.get("quiet", False),
        **kwargs,
    )


def run_with_core(
    ctx: click.Context,
    operation: Callable[[ChartCore], Awaitable[Any]],
    commit_pending: bool = True,
    **core_options: Any,
) -> Any:
    """
    Run an async operation against a fresh ChartCore and close it afterwards.

    Raises:
        click.ClickException: For any tensionchart error.
    """

    async def _main():
        core = open_core(ctx, **core_options)
        try:
            return await operation(core)
        finally:
            await core.close(commit_pending=commit_pending)

    try:
        return asyncio.run(_main())
    except NotFoundError as e:
        raise click.ClickException(str(e))
    except ValidationError as e:
        raise click.ClickException(f"Validation Error: {e}")
    except InvalidOperationError as e:
        raise click.ClickException(f"Operation Error: {e}")
    except TensionChartError as e:
        raise click.ClickException(f"Error: {e}")


def short_id(item_id: str) -> str:
    return item_id[:SHORT_ID_LENGTH]


def resolve_ref(core: ChartCore, item_id: str) -> ItemRef:
    """
    Resolve a full id or a unique id prefix.

    Raises:
        NotFoundError: If nothing matches.
        ValidationError: If the prefix matches more than one item.
    """
    found = core.store.find(item_id)
    if found is not None:
        return ItemRef(found[0], item_id)

    matches = []
    for table in ItemTable:
        for item in core.store.items_of(table):
            if item.id.startswith(item_id):
                matches.append(ItemRef(table, item.id))
    if not matches:
        raise NotFoundError(f"Item '{item_id}' not found.")
    if len(matches) > 1:
        raise ValidationError(f"Id prefix '{item_id}' matches {len(matches)} items.")
    return matches[0]


def resolve_area(core: ChartCore, value: Optional[str]) -> Optional[str]:
    """
    Resolve an Area given by id, id prefix or name. "none" means no Area.

    Raises:
        NotFoundError: If no Area matches.
    """
    if value is None or value.lower() in NO_AREA_VALUES:
        return None
    for area in core.store.areas:
        if area.id == value or area.name.lower() == value.lower():
            return area.id
    prefixed = [area.id for area in core.store.areas if area.id.startswith(value)]
    if len(prefixed) == 1:
        return prefixed[0]
    raise NotFoundError(f"Area '{value}' not found.")


def parse_due(value: Optional[str]):
    """Parse a --due option. Returns (given, date_or_None)."""
    if value is None:
        return False, None
    if value.lower() == "none":
        return True, None
    parsed = parse_date(value)
    if parsed is None:
        raise click.BadParameter(f"Invalid date '{value}'. Use YYYY-MM-DD.", param_hint="--due")
    return True, parsed
