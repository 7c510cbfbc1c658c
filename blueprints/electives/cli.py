# blueprints/electives/cli.py
from __future__ import annotations

import click
from flask.cli import AppGroup

from .services import reconcile_status

electives_cli = AppGroup("electives", help="Elective enrollment maintenance.")


@electives_cli.command("reconcile")
@click.option("--id", "elective_subject_id", type=int, default=None,
              help="Only this elective subject.")
def reconcile_command(elective_subject_id):
    """Recompute enrolled counts and FULL/ACTIVE status from assignments."""
    drifted = reconcile_status(elective_subject_id)
    if not drifted:
        click.echo("No drift found.")
        return
    for row in drifted:
        click.echo(
            f"elective subject {row['elective_subject_id']}: "
            f"count {row['enrolled_count']['was']} -> {row['enrolled_count']['now']}, "
            f"status {row['status']['was']} -> {row['status']['now']}"
        )
