"""CLI tools for the forms catalog."""

from pathlib import Path

import click

from app.db.session import SessionLocal
from app.services import catalog_service, reconciliation_service, spreadsheet_reader
from app.services.catalog_service import StorageError
from app.services.reconciliation_service import ReconciliationIntent, RejectedSheet


@click.group()
def cli():
    """Form submissions CLI tools."""
    pass


@cli.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--dry-run", is_flag=True, help="Preview results without writing counts")
def reconcile(files: tuple[Path, ...], dry_run: bool):
    """
    Reconcile submission counts from spreadsheet exports.

    Same rules as the upload endpoint: one result per file, in the order
    given.

    Example:
        python -m app.cli reconcile "Survey-A-1-1.xlsx" exports/*.csv
        python -m app.cli reconcile "Survey-A (2).xlsx" --dry-run
    """
    sheets = []
    for path in files:
        try:
            sheets.append(spreadsheet_reader.decode_upload(path.name, path.read_bytes()))
        except spreadsheet_reader.SpreadsheetDecodeError as e:
            sheets.append(RejectedSheet(filename=path.name, reason=str(e)))

    db = SessionLocal()
    try:
        result = reconciliation_service.run_upload_batch(db, sheets, dry_run=dry_run)
    except StorageError as e:
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()

    if dry_run:
        click.echo("🔍 DRY RUN - no changes will be made")
        click.echo()

    for outcome in result.outcomes:
        if isinstance(outcome, ReconciliationIntent):
            if outcome.is_new_form:
                click.echo(
                    f"✓ {outcome.filename} -> new form '{outcome.display_name}' "
                    f"({outcome.slug}): {outcome.new_count} submission(s)"
                )
            else:
                click.echo(
                    f"✓ {outcome.filename} -> {outcome.display_name} ({outcome.slug}): "
                    f"{outcome.previous_count} -> {outcome.new_count} submission(s)"
                )
        else:
            click.echo(f"❌ {outcome.filename}: {outcome.reason}")

    click.echo()
    click.echo(
        f"Batch {result.batch_id}: {len(result.intents)} reconciled, "
        f"{len(result.rejections)} rejected"
    )


@cli.command()
def list_forms():
    """
    List tracked forms, newest first.

    Example:
        python -m app.cli list-forms
    """
    db = SessionLocal()
    try:
        forms = catalog_service.list_forms(db)
        if not forms:
            click.echo("No forms tracked yet")
            return
        for form in forms:
            click.echo(
                f"{form.slug}\t{form.name}\t"
                f"{form.submissions} submission(s)\t{form.clicks} click(s)"
            )
    finally:
        db.close()


if __name__ == "__main__":
    cli()
