"""
Config command group for tensionchart.

Commands for viewing and editing the engine settings in <data_dir>/config.json.
"""
import json

import click
from pydantic import ValidationError

from tensionchart.commands.common import data_dir_of
from tensionchart.constants import get_config_manager
from tensionchart.exceptions import StorageError
from tensionchart.managers import ChartStorage
from tensionchart.models.files import ConfigFile


def _storage(ctx: click.Context) -> ChartStorage:
    return ChartStorage(data_dir_of(ctx))


def _load(storage: ChartStorage) -> ConfigFile:
    try:
        return storage.load_config()
    except StorageError as e:
        raise click.ClickException(str(e))


def _settable_keys():
    return [name for name in ConfigFile.model_fields if name != "schema_version"]


@click.group()
def config():
    """View and edit engine configuration.

    Configuration is stored in .tensionchart/config.json.
    """
    pass


@config.command(name="show")
@click.pass_context
def show_config(ctx):
    """Show current configuration."""
    storage = _storage(ctx)
    click.echo(json.dumps(_load(storage).model_dump(mode="json"), indent=2))


@config.command(name="get")
@click.argument("key")
@click.pass_context
def get_config(ctx, key: str):
    """Get a configuration value."""
    if key not in _settable_keys():
        raise click.ClickException(
            f"Unknown config key '{key}'. Valid keys: {', '.join(_settable_keys())}"
        )
    data = _load(_storage(ctx)).model_dump(mode="json")
    click.echo(json.dumps(data[key]))


@config.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_config(ctx, key: str, value: str):
    """Set a configuration value.

    VALUE is parsed as JSON when possible (true, 10, 2.5), else taken as text.
    """
    if key not in _settable_keys():
        raise click.ClickException(
            f"Unknown config key '{key}'. Valid keys: {', '.join(_settable_keys())}"
        )
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value

    storage = _storage(ctx)
    current = _load(storage)
    try:
        updated = ConfigFile.model_validate({**current.model_dump(), key: parsed})
    except ValidationError as e:
        raise click.ClickException(f"Validation Error: invalid value for '{key}': {e.errors()[0]['msg']}")

    try:
        storage.save_config(updated)
    except StorageError as e:
        raise click.ClickException(str(e))
    get_config_manager().reload()
    click.echo(f"{key} = {json.dumps(getattr(updated, key))}")
