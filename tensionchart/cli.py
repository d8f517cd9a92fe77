"""
CLI for tensionchart using the .tensionchart/ folder storage.

Every command opens a ChartCore on the selected chart, so moves, edits and
deletes go through the same optimistic engine a UI would use.
"""
from pathlib import Path
from typing import Optional

import click

from tensionchart.commands.area import area
from tensionchart.commands.board import move, show
from tensionchart.commands.config import config
from tensionchart.commands.init import init
from tensionchart.commands.items import add, delete, edit, link
from tensionchart.constants import DEFAULT_CHART_ID, get_config_manager


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="TCHART_DATA_DIR",
    help="Data directory (default: .tensionchart).",
)
@click.option("-c", "--chart", "chart_id", default=DEFAULT_CHART_ID, show_default=True, help="Chart id.")
@click.option("-q", "--quiet", is_flag=True, help="Only report failures.")
@click.pass_context
def cli(ctx: click.Context, data_dir: Optional[Path], chart_id: str, quiet: bool):
    """A tension chart: Visions, Realities, Tensions and Actions grouped by Area."""
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["chart_id"] = chart_id
    ctx.obj["quiet"] = quiet
    get_config_manager(reset=True, data_dir=data_dir)


cli.add_command(init)
cli.add_command(show)
cli.add_command(move)
cli.add_command(area)
cli.add_command(add)
cli.add_command(edit)
cli.add_command(link)
cli.add_command(delete)
cli.add_command(config)


if __name__ == '__main__':
    cli()
