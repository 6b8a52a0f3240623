"""CLI command modules.

This package contains the implementation of all CLI subcommands, plus the
helpers they share for loading configuration and opening a coordinator.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import click

from floe_catalog.cli.errors import EXIT_SYSTEM_ERROR, CLIError, catalog_errors

if TYPE_CHECKING:
    from floe_catalog.admin import CatalogAdmin
    from floe_catalog.config import CatalogConfig

DEFAULT_ROOT = Path(".floe-catalog")


def load_config(ctx: click.Context) -> CatalogConfig:
    """Build the CatalogConfig selected by the global ``--config``/``--root`` options.

    ``--root`` overrides the root directory of a loaded configuration file.

    Raises:
        CLIError: If the configuration file is missing or invalid.
    """
    import yaml

    from floe_catalog.config import CatalogConfig

    options = ctx.find_root().obj or {}
    config_path: Path | None = options.get("config_path")
    root_dir: Path | None = options.get("root_dir")

    if config_path is None:
        return CatalogConfig(root_dir=root_dir or DEFAULT_ROOT)

    try:
        config = CatalogConfig.from_yaml(config_path)
    except FileNotFoundError:
        raise CLIError(f"File not found: {config_path}", exit_code=EXIT_SYSTEM_ERROR) from None
    except yaml.YAMLError as exc:
        raise CLIError(f"Invalid YAML in {config_path}: {exc}") from exc
    if root_dir is not None:
        config = config.model_copy(update={"root_dir": root_dir})
    return config


@contextmanager
def open_admin(ctx: click.Context) -> Iterator[CatalogAdmin]:
    """Start a coordinator for one command and close it afterwards.

    Catalog errors raised inside the block are converted to CLIError.
    """
    from floe_catalog.factory import create_coordinator

    with catalog_errors():
        config = load_config(ctx)
        admin = create_coordinator(config)
        try:
            yield admin
        finally:
            admin.close()


def parse_settings(values: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated ``key=value`` options.

    Raises:
        click.BadParameter: If a value has no ``=``.
    """
    settings: dict[str, str] = {}
    for value in values:
        key, sep, setting = value.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {value!r}", param_hint="--set")
        settings[key] = setting
    return settings


__all__ = ["DEFAULT_ROOT", "load_config", "open_admin", "parse_settings"]
