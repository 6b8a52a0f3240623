"""CLI entry point for floe-catalog.

The root group resolves its subcommands lazily so that `--help` and
unrelated commands do not import the catalog stack.
"""

from __future__ import annotations

import importlib
from pathlib import Path

import click
import rich_click as rclick

from floe_catalog import __version__
from floe_catalog.cli.output import set_no_color

# Configure rich-click for better help formatting
rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


COMMANDS = ("namespace", "recover", "table")


class LazyGroup(rclick.RichGroup):
    """Root group that imports a subcommand only when it is invoked.

    Each name in COMMANDS is the click command of the same name in
    ``floe_catalog.cli.commands.<name>``.
    """

    def list_commands(self, ctx: click.Context) -> list[str]:
        return list(COMMANDS)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name not in COMMANDS:
            return None
        module = importlib.import_module(f"floe_catalog.cli.commands.{cmd_name}")
        return getattr(module, cmd_name)  # type: ignore[no-any-return]


@click.command(cls=LazyGroup)
@click.version_option(version=__version__, prog_name="floe-catalog")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="FLOE_CATALOG_CONFIG",
    help="Path to catalog.yaml.",
)
@click.option(
    "-r",
    "--root",
    "root_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    envvar="FLOE_CATALOG_ROOT",
    help="Catalog root directory [default: ./.floe-catalog].",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, root_dir: Path | None) -> None:
    """floe-catalog - Namespace catalog administration.

    Manage namespaces and the tables bound to them.

    **Getting Started:**

    - `floe-catalog namespace create NS1` - Create a namespace
    - `floe-catalog table create NS1:T1 --family cf` - Create a table
    - `floe-catalog namespace list` - List namespaces
    - `floe-catalog recover` - Run start-up recovery and show the report
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["root_dir"] = root_dir


if __name__ == "__main__":
    cli()
