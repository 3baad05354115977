from pathlib import Path

import click

from modcatalog.cli.common import CliContext, pass_cli_context, reported_errors
from modcatalog.controllers.asset_controller import AssetController
from modcatalog.utils.constants import SETTINGS_KEY_MODS_FOLDER


@click.command("set-root")
@click.argument(
    "path", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@pass_cli_context
def set_root(ctx: CliContext, path: Path) -> None:
    """Set the managed mods folder."""
    with reported_errors():
        ctx.catalog.set_setting(SETTINGS_KEY_MODS_FOLDER, str(path.resolve()))
    click.echo(str(path.resolve()))


@click.command("get-setting")
@click.argument("key")
@pass_cli_context
def get_setting(ctx: CliContext, key: str) -> None:
    """Print a setting value (empty if unset)."""
    with reported_errors():
        value = ctx.catalog.get_setting(key)
    click.echo(value or "")


@click.command("set-setting")
@click.argument("key")
@click.argument("value")
@pass_cli_context
def set_setting(ctx: CliContext, key: str, value: str) -> None:
    """Store a setting value."""
    with reported_errors():
        ctx.catalog.set_setting(key, value)


@click.command("open-root")
@pass_cli_context
def open_root(ctx: CliContext) -> None:
    """Open the managed mods folder in the file browser."""
    with reported_errors():
        AssetController(ctx.catalog).open_mods_folder()
