import click

from tensionchart.commands.common import data_dir_of
from tensionchart.constants import DEFAULT_CHART_ID
from tensionchart.exceptions import StorageError
from tensionchart.managers import ChartStorage
from tensionchart.models.files import ChartFile


@click.command()
@click.option("--title", default="", help="Chart title.")
@click.option(
    "--force",
    is_flag=True,
    help="Force re-initialization, overwriting an existing chart.",
)
@click.pass_context
def init(ctx, title: str, force: bool):
    """Initializes a new tension chart."""
    chart_id = (ctx.obj or {}).get("chart_id", DEFAULT_CHART_ID)
    storage = ChartStorage(data_dir_of(ctx))
    chart_path = storage.chart_path(chart_id)

    if storage.chart_exists(chart_id) and not force:
        click.confirm(
            f"A chart already exists at {chart_path.resolve()}. Do you want to overwrite it?",
            abort=True,
        )

    try:
        storage.save_chart(ChartFile.empty(chart_id, title))
        if not (storage.data_dir / "config.json").exists():
            storage.save_config(storage.load_config())
        click.echo(f"Chart '{chart_id}' initialized at {chart_path.resolve()}")
    except StorageError as e:
        click.echo(
            f"Error: Could not write to chart file at {chart_path.resolve()}: {e}",
            err=True,
        )
        ctx.exit(1)
