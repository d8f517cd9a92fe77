"""
Item commands: add, edit, link and delete Visions, Realities, Tensions and Actions.
"""
from typing import Optional, Tuple

import click

from tensionchart.commands.common import (
    parse_due,
    resolve_area,
    resolve_ref,
    run_with_core,
    short_id,
)
from tensionchart.constants import MESSAGE_CREATE_FAILED, get_grace_seconds
from tensionchart.core import ChartCore
from tensionchart.exceptions import ValidationError
from tensionchart.managers import Noop
from tensionchart.models.base import ActionStatus, ItemTable, TensionStatus
from tensionchart.utils import item_label

# Which field --text edits per table
TEXT_FIELDS = {
    ItemTable.AREAS: "name",
    ItemTable.VISIONS: "content",
    ItemTable.REALITIES: "content",
    ItemTable.TENSIONS: "title",
    ItemTable.ACTIONS: "title",
}

STATUS_CHOICES = sorted({s.value for s in ActionStatus} | {s.value for s in TensionStatus})


def _report_created(kind: str, item) -> None:
    if item is None:
        raise click.ClickException(MESSAGE_CREATE_FAILED)
    click.echo(f"{kind} '{item_label(item)}' created ({short_id(item.id)}).")


@click.group()
def add():
    """Add Visions, Realities, Tensions and Actions."""
    pass


@add.command(name="vision")
@click.argument("content")
@click.option("-a", "--area", help="Area name or id.")
@click.option("--due", help="Due date (YYYY-MM-DD).")
@click.option("--assignee", help="Assignee.")
@click.pass_context
def add_vision(ctx, content: str, area: Optional[str], due: Optional[str], assignee: Optional[str]):
    """Add a Vision."""
    _, due_date = parse_due(due)

    async def _add(core: ChartCore):
        return await core.add_vision(content, resolve_area(core, area), due_date, assignee)

    _report_created("Vision", run_with_core(ctx, _add))


@add.command(name="reality")
@click.argument("content")
@click.option("-a", "--area", help="Area name or id.")
@click.option("--due", help="Due date (YYYY-MM-DD).")
@click.pass_context
def add_reality(ctx, content: str, area: Optional[str], due: Optional[str]):
    """Add a Reality."""
    _, due_date = parse_due(due)

    async def _add(core: ChartCore):
        return await core.add_reality(content, resolve_area(core, area), due_date)

    _report_created("Reality", run_with_core(ctx, _add))


@add.command(name="tension")
@click.argument("title")
@click.option("-a", "--area", help="Area name or id.")
@click.option("-v", "--vision", "visions", multiple=True, help="Linked Vision id (repeatable).")
@click.option("-r", "--reality", "realities", multiple=True, help="Linked Reality id (repeatable).")
@click.pass_context
def add_tension(ctx, title: str, area: Optional[str], visions: Tuple[str, ...], realities: Tuple[str, ...]):
    """Add a Tension, optionally linked to Visions and Realities."""

    async def _add(core: ChartCore):
        return await core.add_tension(
            title,
            resolve_area(core, area),
            [resolve_ref(core, v).id for v in visions],
            [resolve_ref(core, r).id for r in realities],
        )

    _report_created("Tension", run_with_core(ctx, _add))


@add.command(name="action")
@click.argument("title")
@click.option("-t", "--tension", help="Tension id; omit for a loose action.")
@click.option("-a", "--area", help="Area name or id (defaults to the Tension's Area).")
@click.option("--due", help="Due date (YYYY-MM-DD).")
@click.option("--assignee", help="Assignee.")
@click.pass_context
def add_action(
    ctx,
    title: str,
    tension: Optional[str],
    area: Optional[str],
    due: Optional[str],
    assignee: Optional[str],
):
    """Add an Action to a Tension, or a loose Action."""
    _, due_date = parse_due(due)

    async def _add(core: ChartCore):
        tension_id = resolve_ref(core, tension).id if tension else None
        return await core.add_action(title, tension_id, resolve_area(core, area), due_date, assignee)

    _report_created("Action", run_with_core(ctx, _add))


@click.command(name="edit")
@click.argument("item_id")
@click.option("-x", "--text", help="New title, content or name.")
@click.option("-d", "--desc", help="New description.")
@click.option("--due", help="New due date (YYYY-MM-DD, or 'none' to clear).")
@click.option("-s", "--status", type=click.Choice(STATUS_CHOICES), help="New status.")
@click.option("--assignee", help="New assignee.")
@click.option("-a", "--area", help="Move to an Area (name, id, or 'none').")
@click.option("--detach", is_flag=True, help="Take an action out of its Tension.")
@click.pass_context
def edit(
    ctx,
    item_id: str,
    text: Optional[str],
    desc: Optional[str],
    due: Optional[str],
    status: Optional[str],
    assignee: Optional[str],
    area: Optional[str],
    detach: bool,
):
    """Edit an item. Only specified fields are updated."""
    due_given, due_date = parse_due(due)
    if not any([text, desc, due_given, status, assignee, area, detach]):
        raise click.ClickException(
            "No update parameters provided. "
            "Specify at least one of: --text, --desc, --due, --status, --assignee, --area, --detach."
        )

    async def _edit(core: ChartCore):
        ref = resolve_ref(core, item_id)
        fields = {}
        if text is not None:
            fields[TEXT_FIELDS[ref.table]] = text
        if desc is not None:
            fields["description"] = desc
        if due_given:
            fields["due_date"] = due_date
        if status is not None:
            fields["status"] = status
        if assignee is not None:
            fields["assignee"] = assignee

        results = []
        if fields:
            results.append(await core.update_item(ref, **fields))
        if detach:
            if ref.table != ItemTable.ACTIONS:
                raise ValidationError("Only actions can be detached from a Tension")
            if area is not None:
                results.append(
                    await core.set_area(ref, resolve_area(core, area), remove_from_tension=True)
                )
            else:
                results.append(await core.detach_action(ref.id))
        elif area is not None:
            results.append(await core.set_area(ref, resolve_area(core, area)))
        return ref, results

    ref, results = run_with_core(ctx, _edit)
    if any(not r and not isinstance(r, Noop) for r in results):
        ctx.exit(1)
    click.echo(f"Item {short_id(ref.id)} updated.")


@click.command(name="link")
@click.argument("tension_id")
@click.argument("item_id")
@click.pass_context
def link(ctx, tension_id: str, item_id: str):
    """Link a Vision or Reality to a Tension, or unlink it if already linked."""

    async def _link(core: ChartCore):
        tension_ref = resolve_ref(core, tension_id)
        item_ref = resolve_ref(core, item_id)
        tension = core.store.get_tension(tension_ref.id)
        was_linked = tension is not None and item_ref.id in tension.vision_ids + tension.reality_ids
        outcome = await core.toggle_link(tension_ref.id, item_ref.table, item_ref.id)
        return was_linked, outcome

    was_linked, outcome = run_with_core(ctx, _link)
    if not outcome:
        ctx.exit(1)
    click.echo("Unlinked." if was_linked else "Linked.")


@click.command(name="delete")
@click.argument("item_id")
@click.option("--now", is_flag=True, help="Commit immediately instead of waiting out the undo window.")
@click.confirmation_option(prompt="Are you sure you want to delete this item?")
@click.pass_context
def delete(ctx, item_id: str, now: bool):
    """Delete an item.

    The delete is committed when the undo window closes (grace_seconds in
    config), or at once with --now. Deleting a Tension deletes its actions.
    """
    if not now:
        click.echo(f"Deleting in {get_grace_seconds():g}s (use --now to skip the wait)...")

    async def _delete(core: ChartCore):
        ref = resolve_ref(core, item_id)
        core.request_delete(ref)
        return core, ref

    core, ref = run_with_core(ctx, _delete, commit_pending=now)
    if core.store.get(ref) is not None:
        # The backing store rejected the delete and the item was restored
        ctx.exit(1)
