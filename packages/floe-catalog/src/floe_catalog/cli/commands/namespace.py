"""floe-catalog namespace commands - Manage namespaces."""

from __future__ import annotations

import click

from floe_catalog.cli.commands import open_admin, parse_settings
from floe_catalog.cli.errors import catalog_errors
from floe_catalog.cli.output import info, print_json, print_table, success


@click.group()
def namespace() -> None:
    """Manage namespaces.

    **Commands:**

    - `floe-catalog namespace create` - Create a namespace
    - `floe-catalog namespace list` - List namespaces
    - `floe-catalog namespace describe` - Show a namespace's configuration
    - `floe-catalog namespace modify` - Change a namespace's configuration
    - `floe-catalog namespace delete` - Delete an empty namespace
    """
    pass


@namespace.command("create")
@click.argument("name")
@click.option(
    "--set",
    "settings",
    multiple=True,
    metavar="KEY=VALUE",
    help="Configuration entry (repeatable).",
)
@click.pass_context
def create(ctx: click.Context, name: str, settings: tuple[str, ...]) -> None:
    """Create a namespace.

    Examples:

        floe-catalog namespace create NS1

        floe-catalog namespace create NS1 --set owner=data-eng
    """
    from floe_catalog.models import NamespaceDescriptor

    configuration = parse_settings(settings)
    with catalog_errors():
        descriptor = NamespaceDescriptor(name=name, configuration=configuration)
    with open_admin(ctx) as admin:
        admin.create_namespace(descriptor)
    success(f"Namespace {name} created")


@namespace.command("delete")
@click.argument("name")
@click.pass_context
def delete(ctx: click.Context, name: str) -> None:
    """Delete an empty namespace.

    Examples:

        floe-catalog namespace delete NS1
    """
    with open_admin(ctx) as admin:
        admin.delete_namespace(name)
    success(f"Namespace {name} deleted")


@namespace.command("list")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.pass_context
def list_namespaces(ctx: click.Context, as_json: bool) -> None:
    """List namespaces, reserved ones included."""
    with open_admin(ctx) as admin:
        descriptors = admin.list_namespace_descriptors()

    if as_json:
        print_json([d.model_dump(mode="json") for d in descriptors])
        return
    print_table(
        "Namespaces",
        ["Name", "Configuration"],
        [
            (d.name, ", ".join(f"{k}={v}" for k, v in sorted(d.configuration.items())))
            for d in descriptors
        ],
    )


@namespace.command("describe")
@click.argument("name")
@click.pass_context
def describe(ctx: click.Context, name: str) -> None:
    """Show a namespace's configuration and tables."""
    with open_admin(ctx) as admin:
        descriptor = admin.get_namespace_descriptor(name)
        table_names = admin.list_table_names_by_namespace(name)

    print_json(
        {
            **descriptor.model_dump(mode="json"),
            "tables": [str(t) for t in table_names],
        }
    )


@namespace.command("modify")
@click.argument("name")
@click.option(
    "--set",
    "settings",
    multiple=True,
    metavar="KEY=VALUE",
    help="Configuration entry to add or replace (repeatable).",
)
@click.option(
    "--unset",
    "unset_keys",
    multiple=True,
    metavar="KEY",
    help="Configuration key to remove (repeatable).",
)
@click.pass_context
def modify(
    ctx: click.Context,
    name: str,
    settings: tuple[str, ...],
    unset_keys: tuple[str, ...],
) -> None:
    """Change a namespace's configuration.

    Examples:

        floe-catalog namespace modify NS1 --set owner=platform --unset tier
    """
    updates = parse_settings(settings)
    if not updates and not unset_keys:
        info("Nothing to change")
        return
    with open_admin(ctx) as admin:
        descriptor = admin.get_namespace_descriptor(name)
        admin.modify_namespace(
            descriptor.with_configuration(**updates).without_configuration(*unset_keys)
        )
    success(f"Namespace {name} modified")
