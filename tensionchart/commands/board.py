"""
Board commands: show the chart and move items by simulated drag and drop.
"""
import json
from typing import Optional

import click

from tensionchart.commands.common import resolve_area, resolve_ref, run_with_core, short_id
from tensionchart.core import ChartCore
from tensionchart.managers import DragEndEvent, DropTargetMeta, DropZone, Noop, SetOrderCall
from tensionchart.managers.partition_resolver import ordered_tension_actions
from tensionchart.utils import format_date, split_items_by_date

STATUS_MARKS = {
    "done": " ✓",
    "in_progress": " ⏳",
    "canceled": " ✗",
    "resolved": " ✓",
    "review_needed": " ?",
}


def _due(item) -> str:
    return f" (due {format_date(item.due_date)})" if getattr(item, "due_date", None) else ""


def _line(item, text: str, status: Optional[str] = None) -> str:
    mark = STATUS_MARKS.get(status or "", "")
    return f"[{short_id(item.id)}] {text}{mark}{_due(item)}"


def _display_side(core: ChartCore, title: str, items) -> None:
    click.echo(f"{title}:")
    if not items:
        click.echo("  (none)")
        return
    areas = sorted(core.store.areas, key=lambda a: a.sort_order)
    groups = [(area.id, area.name) for area in areas] + [(None, "Uncategorized")]
    known = {area.id for area in core.store.areas}
    for area_id, name in groups:
        members = [
            i for i in items
            if (i.area_id if i.area_id in known else None) == area_id
        ]
        if not members:
            continue
        dated, undated = split_items_by_date(members, descending=core.descending)
        click.echo(f"  {name}")
        for item in [*dated, *undated]:
            click.echo(f"    {_line(item, item.content)}")


def display_chart(core: ChartCore) -> None:
    """Display the chart in human-readable form."""
    click.echo(f"Chart: {core.chart_id}")
    if core.store.areas:
        names = ", ".join(area.name for area in sorted(core.store.areas, key=lambda a: a.sort_order))
        click.echo(f"Areas: {names}")
    click.echo("")
    _display_side(core, "Visions", core.store.visions)
    _display_side(core, "Realities", core.store.realities)
    click.echo("")
    click.echo("Tensions:")

    for group in core.structure().all_groups():
        if not group.tensions and not group.orphaned_actions:
            continue
        click.echo(f"== {group.name} ==")
        for tension in group.tensions:
            click.echo(f"  {_line(tension, tension.title, tension.status.value)}")
            for action in ordered_tension_actions(tension, descending=core.descending):
                click.echo(f"    - {_line(action, action.title, action.status.value)}")
        if group.orphaned_actions:
            click.echo("  Loose actions:")
            for action in group.orphaned_actions:
                click.echo(f"    - {_line(action, action.title, action.status.value)}")


@click.command(name="show")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def show(ctx: click.Context, json_output: bool):
    """Show the chart: Visions, Realities, and Tensions grouped by Area."""

    async def _show(core: ChartCore):
        if json_output:
            click.echo(json.dumps(core.store.model_dump(mode="json"), indent=2))
        else:
            display_chart(core)

    run_with_core(ctx, _show)


@click.command(name="move")
@click.argument("dragged")
@click.argument("target", required=False)
@click.option(
    "-z", "--zone",
    type=click.Choice([zone.value for zone in DropZone]),
    help="Kind of drop target (default: the TARGET item itself).",
)
@click.option("-a", "--area", help="Area of the drop zone (name or id; 'none' for uncategorized).")
@click.option("-t", "--tension", help="Tension of the drop zone.")
@click.option("--cascade/--no-cascade", default=None, help="Cascade Area moves to dependents.")
@click.pass_context
def move(
    ctx: click.Context,
    dragged: str,
    target: Optional[str],
    zone: Optional[str],
    area: Optional[str],
    tension: Optional[str],
    cascade: Optional[bool],
):
    """Drag DRAGGED and drop it on TARGET or into a zone.

    Dropping on an item of the same group reorders; dropping into another
    group (an Area zone or a Tension) moves the item to the end of it.
    """
    if target is None and zone is None:
        raise click.UsageError("Give a TARGET item or a --zone.")

    async def _move(core: ChartCore):
        dragged_ref = resolve_ref(core, dragged)
        target_id = resolve_ref(core, target).id if target else None
        meta = None
        if zone is not None:
            meta = DropTargetMeta(
                zone=DropZone(zone),
                area_id=resolve_area(core, area),
                tension_id=resolve_ref(core, tension).id if tension else None,
            )
        event = DragEndEvent(dragged_id=dragged_ref.id, drop_target_id=target_id, drop_target_meta=meta)
        return await core.handle_drag_end(event)

    result = run_with_core(ctx, _move, cascade=cascade)
    if isinstance(result, Noop):
        click.echo(f"Nothing to move: {result.reason}.")
        return
    if not result:
        ctx.exit(1)
    if result.issued and all(isinstance(call, SetOrderCall) for call in result.issued):
        click.echo("Order updated.")
