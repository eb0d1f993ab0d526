# ruff: noqa: I001
"""CLI for the ``financial_disclosure`` package.

Command handlers (``cmd_*``) return a process exit code and write errors to
stderr as ``Error: ...``; the Typer commands below are thin wrappers. The root
callback loads a local ``.env`` with ``python-dotenv`` (without overriding the
environment) and configures package logging before any command runs.

Input files are text: CSV exports, or statement/affidavit text that has
already been extracted from PDF/DOCX by another tool.
"""

from __future__ import annotations

import json
import sys
from datetime import date
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .analysis import compute_alerts, missing_statements, verification_report
from .case_file import (
    build_case_file,
    case_file_name,
    claim_to_dict,
    dump_case_file,
    load_case_file,
    transaction_to_dict,
)
from .claims import extract_claims, import_claims
from .errors import CaseFileError, DisclosureError
from .ingest import FileJob, collect_issues, process_batch
from .logging_setup import configure_logging
from .mapper import CategoryMapper
from .models import (
    BANK_STATEMENT,
    FINANCIAL_AFFIDAVIT,
    Claim,
    FileRecord,
    new_id,
    normalize_cycle_day,
)
from .parsers import StatementParser
from .settings import Settings
from .taxonomy import CategoryTaxonomy, load_taxonomy


# ---- Small module-level helpers used by CLI commands -------------------------


def _err(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def _read_text(path: Path) -> str:
    # ``utf-8-sig`` drops a BOM written by spreadsheet exports.
    return path.read_text(encoding="utf-8-sig", errors="replace")


def _mapper(settings: Settings) -> CategoryMapper:
    return CategoryMapper(load_taxonomy(settings.taxonomy_path))


def _load_case(case_path: Path, taxonomy: CategoryTaxonomy):
    return load_case_file(case_path.read_bytes(), taxonomy=taxonomy)


def _money(value) -> str:
    return f"R {value:,.2f}"


# ---- Command handlers ---------------------------------------------------------


def cmd_parse_statement(
    csv_path: str,
    *,
    parser: str = "generic",
    entity: str | None = None,
    cycle_day: str = "last",
) -> int:
    """Parse a bank CSV and print its transactions as a JSON array."""

    settings = Settings.from_env()
    path = Path(csv_path)
    try:
        text = _read_text(path)
        txs = StatementParser.parse(
            parser=parser,
            csv_text=text,
            entity=entity,
            cycle_day=cycle_day,
            file_name=path.name,
            max_rows=settings.csv_max_rows,
        )
    except FileNotFoundError:
        _err(f"File not found: {csv_path}")
        return 1
    except PermissionError:
        _err(f"Permission denied: {csv_path}")
        return 1
    except DisclosureError as e:
        _err(f"Failed to parse CSV: {e}")
        return 1

    print(json.dumps([transaction_to_dict(t) for t in txs], indent=2, ensure_ascii=False))
    return 0


def cmd_extract_claims(text_path: str, *, map_categories: bool = True) -> int:
    """Extract claims from affidavit text and print them as a JSON array."""

    settings = Settings.from_env()
    try:
        text = _read_text(Path(text_path))
    except FileNotFoundError:
        _err(f"File not found: {text_path}")
        return 1
    except PermissionError:
        _err(f"Permission denied: {text_path}")
        return 1

    try:
        if map_categories:
            claims = import_claims(text, _mapper(settings))
        else:
            claims = extract_claims(text)
    except (OSError, ValueError) as e:
        _err(f"Failed to load taxonomy: {e}")
        return 1

    print(json.dumps([claim_to_dict(c) for c in claims], indent=2, ensure_ascii=False))
    return 0


def cmd_verify(case_path: str, *, months: int = 6) -> int:
    """Print claimed versus proven monthly amounts for every claim in a case."""

    if months not in (3, 6):
        _err("--months must be 3 or 6")
        return 2
    settings = Settings.from_env()
    try:
        taxonomy = load_taxonomy(settings.taxonomy_path)
    except (OSError, ValueError) as e:
        _err(f"Failed to load taxonomy: {e}")
        return 1
    try:
        case = _load_case(Path(case_path), taxonomy)
    except FileNotFoundError:
        _err(f"File not found: {case_path}")
        return 1
    except CaseFileError as e:
        _err(str(e))
        return 1

    rows = verification_report(case.claims, case.transactions, months)
    table = Table(title=f"{case.case_name}: {months}-month proof")
    table.add_column("Category")
    table.add_column("Claimed", justify="right")
    table.add_column("Proven", justify="right")
    table.add_column("Ratio", justify="right")
    table.add_column("Status")
    styles = {"Verified": "green", "Over": "cyan", "Shortfall": "red", "No Claim": "dim"}
    for row in rows:
        table.add_row(
            row.category,
            _money(row.claimed),
            _money(row.proven),
            f"{row.ratio * 100:.0f}%",
            f"[{styles[row.label]}]{row.label}[/{styles[row.label]}]",
        )
    Console().print(table)
    return 0


def cmd_missing_statements(case_path: str, *, today: str | None = None) -> int:
    """Print the statement cycles that have no transactions, per account."""

    settings = Settings.from_env()
    try:
        now = date.fromisoformat(today) if today else None
    except ValueError:
        _err(f"--today must be YYYY-MM-DD, got {today!r}")
        return 2
    try:
        taxonomy = load_taxonomy(settings.taxonomy_path)
    except (OSError, ValueError) as e:
        _err(f"Failed to load taxonomy: {e}")
        return 1
    try:
        case = _load_case(Path(case_path), taxonomy)
    except FileNotFoundError:
        _err(f"File not found: {case_path}")
        return 1
    except CaseFileError as e:
        _err(str(e))
        return 1

    gaps = missing_statements(case.transactions, now=now)
    if not gaps:
        print("No missing statements.")
        return 0
    for gap in gaps:
        print(f"{gap.account}: {', '.join(gap.missing)}")
    return 0


def cmd_build_case(
    *,
    statements: list[str],
    affidavits: list[str],
    output: str,
    case_name: str | None = None,
    parser: str = "generic",
    entity: str | None = None,
    cycle_day: str = "last",
) -> int:
    """Process statements and affidavits in one batch and write a case file.

    Per-file problems are listed on stderr. The case file is written even when
    some files fail; the exit status is ``1`` if any file failed outright.
    """

    settings = Settings.from_env()
    day = normalize_cycle_day(cycle_day)
    jobs: list[FileJob] = []
    for paths, file_type in ((statements, BANK_STATEMENT), (affidavits, FINANCIAL_AFFIDAVIT)):
        for raw in paths:
            path = Path(raw)
            try:
                content = _read_text(path)
            except OSError as e:
                _err(f"Cannot read {raw}: {e}")
                return 1
            record = FileRecord(
                id=new_id(), name=path.name, type=file_type, entity=entity, cycle_day=day
            )
            jobs.append(FileJob(file=record, content=content, parser=parser))

    if not jobs:
        _err("Nothing to do: pass at least one --statement or --affidavit")
        return 2

    try:
        mapper = _mapper(settings)
    except (OSError, ValueError) as e:
        _err(f"Failed to load taxonomy: {e}")
        return 1

    outcomes = process_batch(jobs, settings=settings, mapper=mapper)

    transactions = [t for o in outcomes for t in o.transactions]
    claims: list[Claim] = []
    seen: set[str] = set()
    for o in outcomes:
        for c in o.claims:
            if c.category.lower() not in seen:
                seen.add(c.category.lower())
                claims.append(c)

    document = build_case_file(
        transactions=transactions,
        claims=claims,
        files=[o.file for o in outcomes],
        case_name=case_name,
        alerts=compute_alerts(transactions, claims),
        taxonomy=mapper.taxonomy,
    )
    out_path = Path(output)
    if out_path.is_dir():
        out_path = out_path / case_file_name(case_name)
    out_path.write_text(dump_case_file(document), encoding="utf-8")

    issues = collect_issues(outcomes)
    for issue in issues:
        print(f"{issue.severity}: {issue.file}: {issue.message}", file=sys.stderr)
    print(
        f"Wrote {out_path} ({len(transactions)} transactions, {len(claims)} claims, "
        f"{len(issues)} issues)"
    )
    return 1 if any(o.failed for o in outcomes) else 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Extract transactions and claimed expenses from financial disclosure "
        "documents and check the claims against bank data."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in defaults).
CASE_PATH_OPTION: OptionInfo = typer.Option(
    "--case-path",
    help="Path to a case file (.r43 / .json)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files
)
PARSER_OPTION: OptionInfo = typer.Option(
    "--parser", help="CSV layout: standard-bank, fnb or generic"
)
ENTITY_OPTION: OptionInfo = typer.Option(
    "--entity", help="Entity hint (PERSONAL, BUSINESS, TRUST, CREDIT, SPOUSE)"
)
CYCLE_DAY_OPTION: OptionInfo = typer.Option(
    "--cycle-day", help="Statement closing day (1-31) or 'last'"
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("parse-statement")
def parse_statement_cmd(
    csv_path: Annotated[Path, typer.Option("--csv-path", help="Bank CSV export")],
    parser: Annotated[str, PARSER_OPTION] = "generic",
    entity: Annotated[str | None, ENTITY_OPTION] = None,
    cycle_day: Annotated[str, CYCLE_DAY_OPTION] = "last",
) -> None:
    """Parse a bank CSV and print transactions as JSON."""

    _exit(cmd_parse_statement(str(csv_path), parser=parser, entity=entity, cycle_day=cycle_day))


@app.command("extract-claims")
def extract_claims_cmd(
    text_path: Annotated[Path, typer.Option("--text-path", help="Affidavit text file")],
    map_categories: Annotated[
        bool, typer.Option("--map/--no-map", help="Map categories onto the taxonomy")
    ] = True,
) -> None:
    """Extract claimed monthly expenses from affidavit text."""

    _exit(cmd_extract_claims(str(text_path), map_categories=map_categories))


@app.command("verify")
def verify_cmd(
    case_path: Annotated[Path, CASE_PATH_OPTION],
    months: Annotated[int, typer.Option("--months", help="Proof window: 3 or 6")] = 6,
) -> None:
    """Show claimed versus proven averages for a case file."""

    _exit(cmd_verify(str(case_path), months=months))


@app.command("missing-statements")
def missing_statements_cmd(
    case_path: Annotated[Path, CASE_PATH_OPTION],
    today: Annotated[
        str | None, typer.Option("--today", help="Anchor date (YYYY-MM-DD); default today")
    ] = None,
) -> None:
    """List statement cycles with no transactions per account."""

    _exit(cmd_missing_statements(str(case_path), today=today))


@app.command("build-case")
def build_case_cmd(
    output: Annotated[Path, typer.Option("--output", help="Case file path or directory")],
    statement: Annotated[
        list[Path] | None, typer.Option("--statement", help="Bank statement (repeatable)")
    ] = None,
    affidavit: Annotated[
        list[Path] | None, typer.Option("--affidavit", help="Affidavit text (repeatable)")
    ] = None,
    case_name: Annotated[str | None, typer.Option("--case-name", help="Case name")] = None,
    parser: Annotated[str, PARSER_OPTION] = "generic",
    entity: Annotated[str | None, ENTITY_OPTION] = None,
    cycle_day: Annotated[str, CYCLE_DAY_OPTION] = "last",
) -> None:
    """Batch-process documents and write a case file."""

    _exit(
        cmd_build_case(
            statements=[str(p) for p in statement or []],
            affidavits=[str(p) for p in affidavit or []],
            output=str(output),
            case_name=case_name,
            parser=parser,
            entity=entity,
            cycle_day=cycle_day,
        )
    )


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(Settings.from_env().log_level)


if __name__ == "__main__":  # pragma: no cover
    app()
