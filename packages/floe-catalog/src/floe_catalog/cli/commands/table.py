"""floe-catalog table commands - Manage tables bound to namespaces."""

from __future__ import annotations

import click

from floe_catalog.cli.commands import open_admin, parse_settings
from floe_catalog.cli.errors import catalog_errors
from floe_catalog.cli.output import print_json, print_table, success


@click.group()
def table() -> None:
    """Manage tables.

    Table names are `namespace:qualifier`; a bare qualifier refers to the
    `default` namespace.
    """
    pass


@table.command("create")
@click.argument("name")
@click.option(
    "-f",
    "--family",
    "families",
    multiple=True,
    required=True,
    help="Column family name (repeatable, at least one).",
)
@click.option(
    "--set",
    "settings",
    multiple=True,
    metavar="KEY=VALUE",
    help="Table configuration entry (repeatable).",
)
@click.pass_context
def create(
    ctx: click.Context,
    name: str,
    families: tuple[str, ...],
    settings: tuple[str, ...],
) -> None:
    """Create a table in an existing namespace.

    Examples:

        floe-catalog table create NS1:T1 --family my_cf
    """
    from floe_catalog.models import TableDescriptor

    configuration = parse_settings(settings)
    with catalog_errors():
        descriptor = TableDescriptor.of(name, *families, **configuration)
    with open_admin(ctx) as admin:
        admin.create_table(descriptor)
    success(f"Table {descriptor.table_name} created")


@table.command("list")
@click.option("-n", "--namespace", default=None, help="Only tables of this namespace.")
@click.option("-p", "--pattern", default=None, help="Regular expression on namespace:qualifier.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.pass_context
def list_tables(
    ctx: click.Context,
    namespace: str | None,
    pattern: str | None,
    as_json: bool,
) -> None:
    """List tables.

    Without `--namespace`, tables of the `system` namespace are not shown.
    """
    with open_admin(ctx) as admin:
        if namespace is not None:
            descriptors = admin.list_table_descriptors_by_namespace(namespace)
        else:
            descriptors = admin.list_table_descriptors(pattern)
        entries = [
            {
                "name": str(d.table_name),
                "state": admin.table_state(d.table_name),
                "families": list(d.family_names),
            }
            for d in descriptors
        ]

    if as_json:
        print_json(entries)
        return
    print_table(
        "Tables",
        ["Name", "State", "Families"],
        [(e["name"], e["state"], ", ".join(e["families"])) for e in entries],
    )


def _state_command(verb: str) -> click.Command:
    @click.command(verb)
    @click.argument("name")
    @click.pass_context
    def command(ctx: click.Context, name: str) -> None:
        with open_admin(ctx) as admin:
            getattr(admin, f"{verb}_table")(name)
        success(f"Table {name} {verb}d")

    command.help = f"{verb.capitalize()} a table."
    return command


table.add_command(_state_command("disable"))
table.add_command(_state_command("enable"))


@table.command("delete")
@click.argument("name")
@click.pass_context
def delete(ctx: click.Context, name: str) -> None:
    """Delete a disabled table.

    Examples:

        floe-catalog table disable NS1:T1

        floe-catalog table delete NS1:T1
    """
    with open_admin(ctx) as admin:
        admin.delete_table(name)
    success(f"Table {name} deleted")
