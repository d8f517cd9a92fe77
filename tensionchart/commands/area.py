"""
Area command group: add, list and remove the Areas items are grouped by.
"""
import json

import click

from tensionchart.commands.common import resolve_area, run_with_core, short_id
from tensionchart.constants import MESSAGE_CREATE_FAILED
from tensionchart.core import ChartCore
from tensionchart.exceptions import NotFoundError


@click.group()
def area():
    """Manage Areas (user-defined groups).

    Reorder Areas with `move AREA TARGET_AREA`.
    """
    pass


@area.command(name="add")
@click.argument("name")
@click.option("-c", "--color", default="gray", show_default=True, help="Display color.")
@click.pass_context
def add_area(ctx, name: str, color: str):
    """Add an Area at the end of the Area list."""

    async def _add(core: ChartCore):
        return await core.add_area(name, color)

    created = run_with_core(ctx, _add)
    if created is None:
        raise click.ClickException(MESSAGE_CREATE_FAILED)
    click.echo(f"Area '{created.name}' created ({short_id(created.id)}).")


@area.command(name="list")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def list_areas(ctx, json_output: bool):
    """List Areas in display order with their item counts."""

    async def _list(core: ChartCore):
        rows = []
        structured = core.structure()
        for group in structured.categorized:
            visions = [v for v in core.store.visions if v.area_id == group.area.id]
            realities = [r for r in core.store.realities if r.area_id == group.area.id]
            rows.append({
                "id": group.area.id,
                "name": group.area.name,
                "color": group.area.color,
                "sort_order": group.area.sort_order,
                "visions": len(visions),
                "realities": len(realities),
                "tensions": len(group.tensions),
                "loose_actions": len(group.orphaned_actions),
            })
        return rows

    rows = run_with_core(ctx, _list)
    if json_output:
        click.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        click.echo("No areas.")
        return
    for row in rows:
        click.echo(
            f"[{short_id(row['id'])}] {row['name']} ({row['color']}): "
            f"{row['visions']} visions, {row['realities']} realities, "
            f"{row['tensions']} tensions, {row['loose_actions']} loose actions"
        )


@area.command(name="remove")
@click.argument("name_or_id")
@click.confirmation_option(prompt="Remove this area? Its items become uncategorized.")
@click.pass_context
def remove_area(ctx, name_or_id: str):
    """Remove an Area. Items in it show as uncategorized."""

    async def _remove(core: ChartCore):
        area_id = resolve_area(core, name_or_id)
        if area_id is None:
            raise NotFoundError(f"Area '{name_or_id}' not found.")
        return await core.remove_area(area_id)

    if not run_with_core(ctx, _remove):
        ctx.exit(1)
    click.echo("Area removed.")
