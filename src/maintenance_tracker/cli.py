"""Command-line interface for the maintenance tracker."""

from __future__ import annotations

import logging
import shutil
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

import typer

from .config import TrackerSettings
from .db import database_connection, fetch_batches
from .filters import ActivityFilter
from .models import ActivityStatus, ImportMapping
from .paths import batch_file_path, get_db_path, get_log_path

app = typer.Typer(help="Maintenance activity planner.")

DbOption = typer.Option(
    None, "--db", help="Location of the activity SQLite database."
)
UserOption = typer.Option(None, "--user", help="Name recorded in the audit log.")


@app.callback(no_args_is_help=True)
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    log_to_file: bool = typer.Option(
        False, "--log-file", help="Also write logs to the application log file."
    ),
) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_to_file:
        handlers.append(logging.FileHandler(get_log_path(), encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=handlers,
    )


@app.command("import")
def import_spreadsheet(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Spreadsheet (.xlsx) to import."),
    columns: List[str] = typer.Option(
        [],
        "--map",
        "-m",
        help="Column mapping as field=Header, e.g. descricao=Descrição. Repeatable.",
    ),
    separator: str = typer.Option("/", "--separator", help="Separator between names in the responsible column."),
    date_format: str = typer.Option("DD/MM/AAAA", "--date-format", help="Layout of the date column."),
    sheet: Optional[str] = typer.Option(None, "--sheet", help="Worksheet name (defaults to the first)."),
    batch_id: Optional[str] = typer.Option(None, "--batch", help="Replace an existing batch instead of creating one."),
    db_path: Optional[Path] = DbOption,
    user: Optional[str] = UserOption,
) -> None:
    """Import activities from a spreadsheet."""
    from .service import import_rows
    from .spreadsheet import SpreadsheetError, read_workbook

    mapping = _mapping_from_options(columns, separator, date_format)
    try:
        headers, rows = read_workbook(path, sheet=sheet)
    except SpreadsheetError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    with database_connection(db_path or get_db_path()) as conn:
        batch, activities = import_rows(
            conn, rows, headers, mapping, batch_id=batch_id, user=user
        )
    shutil.copyfile(path, batch_file_path(batch.id, path.suffix or ".xlsx"))
    typer.echo(f"Batch {batch.id}: {len(activities)} activities from {len(rows)} rows.")


@app.command()
def reimport(
    batch_id: str = typer.Argument(..., help="Batch to rebuild."),
    columns: List[str] = typer.Option([], "--map", "-m", help="Column mapping as field=Header. Repeatable."),
    separator: str = typer.Option("/", "--separator"),
    date_format: str = typer.Option("DD/MM/AAAA", "--date-format"),
    db_path: Optional[Path] = DbOption,
    user: Optional[str] = UserOption,
) -> None:
    """Rebuild an imported batch from its stored rows with a new mapping."""
    from .service import reimport_batch

    mapping = _mapping_from_options(columns, separator, date_format)
    with database_connection(db_path or get_db_path()) as conn:
        try:
            _, activities = reimport_batch(conn, batch_id, mapping, user=user)
        except ValueError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    typer.echo(f"Batch {batch_id}: {len(activities)} activities.")


@app.command()
def batches(db_path: Optional[Path] = DbOption) -> None:
    """List import batches."""
    with database_connection(db_path or get_db_path()) as conn:
        rows = fetch_batches(conn)
    if not rows:
        typer.echo("No import batches.")
        return
    for batch in rows:
        typer.echo(
            f"{batch.id:<16} {batch.created_at:%Y-%m-%d %H:%M}  "
            f"{batch.count:>4} activities  {len(batch.rows):>4} rows"
        )


@app.command("delete-batch")
def delete_batch_command(
    batch_id: str = typer.Argument(...),
    db_path: Optional[Path] = DbOption,
    user: Optional[str] = UserOption,
) -> None:
    """Delete an import batch and all activities it created."""
    from .service import delete_import_batch

    with database_connection(db_path or get_db_path()) as conn:
        try:
            removed = delete_import_batch(conn, batch_id, user=user)
        except ValueError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    typer.echo(f"Deleted batch {batch_id} ({removed} activities).")


@app.command()
def expand(
    activity_id: str = typer.Argument(..., help="Recurring activity to expand."),
    until: str = typer.Option(..., "--until", help="Last date (YYYY-MM-DD) to generate."),
    db_path: Optional[Path] = DbOption,
    user: Optional[str] = UserOption,
) -> None:
    """Generate future occurrences of a recurring activity."""
    from .service import generate_recurrences

    limit = _parse_day(until)
    with database_connection(db_path or get_db_path()) as conn:
        try:
            generated = generate_recurrences(
                conn, activity_id, limit, settings=TrackerSettings(), user=user
            )
        except ValueError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    typer.echo(f"Generated {len(generated)} occurrences.")


@app.command()
def status(
    activity_id: str = typer.Argument(...),
    new_status: ActivityStatus = typer.Argument(..., help="New status value."),
    db_path: Optional[Path] = DbOption,
    user: Optional[str] = UserOption,
) -> None:
    """Change the status of one activity."""
    from .service import update_status

    with database_connection(db_path or get_db_path()) as conn:
        try:
            update_status(conn, activity_id, new_status, user=user)
        except ValueError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    typer.echo(f"{activity_id}: {new_status.value}")


@app.command()
def manpower(
    shift: Optional[str] = typer.Option(None, "--shift"),
    responsible: Optional[str] = typer.Option(None, "--responsible"),
    supervisor: Optional[str] = typer.Option(None, "--supervisor"),
    mine: Optional[str] = typer.Option(None, "--mine", help="Only activities naming this person."),
    db_path: Optional[Path] = DbOption,
) -> None:
    """Print headcount and man-hours per activity."""
    from .reporting import SummaryPrinter

    flt = ActivityFilter(
        shift=shift, responsible=responsible, supervisor=supervisor, only_mine_for=mine
    )
    SummaryPrinter(db_path=db_path or get_db_path()).print_manpower(flt)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = DbOption,
    log_level: str = typer.Option("info", "--log-level", help="uvicorn log level."),
) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from .webapp import create_app

    api = create_app(db_path=db_path or get_db_path(), settings=TrackerSettings())
    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(api, host=host, port=port, log_level=log_level)


def _mapping_from_options(columns: List[str], separator: str, date_format: str) -> ImportMapping:
    record: dict[str, str] = {}
    for item in columns:
        field, sep, header = item.partition("=")
        if not sep or not field.strip():
            raise typer.BadParameter(f"Expected field=Header, got {item!r}", param_hint="--map")
        record[field.strip()] = header.strip()
    record["responsavelSeparator"] = separator
    record["dateFormat"] = date_format
    try:
        return ImportMapping.from_record(record)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--date-format") from exc


def _parse_day(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise typer.BadParameter("Expected YYYY-MM-DD", param_hint="--until") from exc
