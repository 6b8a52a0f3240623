"""floe-catalog recover command - Run start-up recovery and show what it repaired."""

from __future__ import annotations

import click

from floe_catalog.cli.commands import open_admin
from floe_catalog.cli.output import info, print_json, success, warning


@click.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.pass_context
def recover(ctx: click.Context, as_json: bool) -> None:
    """Finish interrupted operations and repair the directory tree.

    Replays pending intents, finishes half-created or half-deleted records,
    repairs table counts, removes orphan directories and recreates missing
    ones. Running it twice in a row reports no changes the second time.
    """
    with open_admin(ctx) as admin:
        report = admin.manager.last_report

    if report is None:
        return
    if as_json:
        print_json(report.model_dump())
        return
    if not report.changed:
        success("Catalog consistent, nothing to repair")
        return

    info(f"Intents replayed: {report.intents_replayed}")
    info(f"Records finalized: {report.records_finalized}")
    info(f"Counts repaired: {report.counts_repaired}")
    for path in report.directories_removed:
        warning(f"Removed orphan directory {path}")
    for path in report.directories_created:
        warning(f"Created missing directory {path}")
    success("Recovery complete")
