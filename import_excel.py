"""Import study results from the spreadsheet into MongoDB.

    python import_excel.py
    python import_excel.py --path other.xlsx --strict
    python import_excel.py --dry-run --log-level DEBUG
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from core.config import get_settings
from core.importer import run_import


logger = logging.getLogger("import_excel")

app = typer.Typer(
    name="import-excel",
    help="Import usability-study results from an Excel workbook into MongoDB",
    add_completion=False,
)


@app.command()
def main(
    path: Annotated[
        Optional[Path],
        typer.Option("--path", "-p", help="Workbook to read (defaults to EXCEL_PATH)"),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Fail on unknown version labels or unparseable dates"),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Convert rows but do not write to MongoDB"),
    ] = False,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Logging level (defaults to LOG_LEVEL)"),
    ] = None,
) -> None:
    settings = get_settings()
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        count = run_import(settings, path=path, strict=strict, dry_run=dry_run)
    except Exception:
        logger.exception("import failed")
        raise typer.Exit(code=1)
    logger.info("import finished: %d documents", count)


if __name__ == "__main__":
    app()
