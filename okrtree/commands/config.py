"""
Config command group.

Commands for viewing and editing configuration.
"""
import json

import click
from pydantic import ValidationError

from okrtree.constants import API_BASE_URL_ENV_VAR, get_state_dir
from okrtree.exceptions import StorageError
from okrtree.managers import StorageManager
from okrtree.models.files import ConfigFile


def _storage() -> StorageManager:
    return StorageManager(get_state_dir())


def _load(storage: StorageManager) -> ConfigFile:
    try:
        return storage.load_config()
    except StorageError as e:
        raise click.ClickException(str(e))


def _parse_value(raw: str):
    """Interpret VALUE as JSON when possible (numbers, null), else as text."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@click.group()
def config():
    """View and edit configuration.

    Configuration is stored in config.json inside the state directory
    (~/.okrtree, or $OKRTREE_HOME).
    """
    pass


@config.command(name="show")
def show_config():
    """Show current configuration."""
    storage = _storage()
    data = _load(storage).model_dump(mode="json")
    click.echo(f"# {storage.config_path}")
    for key, value in data.items():
        click.echo(f"{key} = {json.dumps(value)}")
    click.echo(f"# {API_BASE_URL_ENV_VAR} overrides api_base_url when set")


@config.command(name="get")
@click.argument("key")
def get_config(key):
    """Get a configuration value."""
    data = _load(_storage()).model_dump(mode="json")
    if key not in data:
        raise click.ClickException(f"Unknown config key '{key}'.")
    click.echo(json.dumps(data[key]))


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_config(key, value):
    """Set a configuration value."""
    storage = _storage()
    current = _load(storage).model_dump(mode="json")
    if key not in current or key == "schema_version":
        raise click.ClickException(f"Unknown config key '{key}'.")

    current[key] = _parse_value(value)
    try:
        updated = ConfigFile.model_validate(current)
    except ValidationError as e:
        raise click.ClickException(f"Invalid value for '{key}': {e.errors()[0]['msg']}")

    try:
        storage.save_config(updated)
    except StorageError as e:
        raise click.ClickException(str(e))
    click.echo(f"{key} = {json.dumps(getattr(updated, key))}")
