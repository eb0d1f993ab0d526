"""Per-file processing and batch orchestration.

Each uploaded file has already been triaged (``FileRecord.type``) and its text
extracted by the host application. This module routes it to the right
extractor and wraps the result in a :class:`FileOutcome`:

- Bank statements: ``.csv`` goes through the selected CSV parser, ``.pdf`` and
  ``.txt`` through the statement text-line parser.
- Financial affidavits: ``.docx``, ``.doc``, ``.pdf`` and ``.txt`` go through
  claim extraction and category mapping.

``process_bank_statement`` and ``process_affidavit`` raise on structural
failures (wrong triage type, unsupported extension, missing date column).
:func:`process_batch` turns those into error issues so one bad file never
stops the rest of the batch. An extraction that yields nothing is a warning
issue, not an error.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal, TypeAlias

from .claims import import_claims
from .entities import ensure_transaction_entities
from .errors import DisclosureError, UnsupportedFormatError
from .logging_setup import get_logger
from .mapper import CategoryMapper, default_mapper
from .models import BANK_STATEMENT, FINANCIAL_AFFIDAVIT, Claim, FileRecord, Transaction
from .parsers import StatementParser, parse_statement_text
from .pool import ordered_map
from .settings import Settings

_logger = get_logger("financial_disclosure.ingest")

CSV_EXTENSIONS: tuple[str, ...] = ("csv",)
STATEMENT_TEXT_EXTENSIONS: tuple[str, ...] = ("pdf", "txt")
AFFIDAVIT_EXTENSIONS: tuple[str, ...] = ("docx", "doc", "pdf", "txt")

PDF_EMPTY_MESSAGE = (
    "Could not extract transactions from PDF. Please use CSV format for better results."
)

Severity: TypeAlias = Literal["error", "warning"]


@dataclass(frozen=True, slots=True)
class FileIssue:
    file: str
    message: str
    kind: str = "error"
    severity: Severity = "error"


@dataclass(frozen=True, slots=True)
class FileOutcome:
    file: FileRecord
    transactions: tuple[Transaction, ...] = ()
    claims: tuple[Claim, ...] = ()
    issues: tuple[FileIssue, ...] = ()

    @property
    def failed(self) -> bool:
        return any(i.severity == "error" for i in self.issues)


@dataclass(frozen=True, slots=True)
class FileJob:
    """A triaged file plus its extracted text, ready for processing."""

    file: FileRecord
    content: str
    parser: str | None = None


def _check_type(file: FileRecord, expected: str) -> None:
    if file.type != expected:
        raise DisclosureError(
            f"Invalid file type for {expected.lower()} processing: {file.name} is {file.type!r}"
        )


def process_bank_statement(
    file: FileRecord,
    content: str,
    parser: str | None = None,
    *,
    settings: Settings | None = None,
) -> FileOutcome:
    _check_type(file, BANK_STATEMENT)
    settings = settings or Settings()
    ext = file.extension

    if ext in CSV_EXTENSIONS:
        parsed = StatementParser.parse(
            parser=parser,
            csv_text=content,
            entity=file.entity,
            file_id=file.id,
            cycle_day=file.cycle_day,
            file_name=file.name,
            max_rows=settings.csv_max_rows,
        )
        empty_message = f"No transactions found in {file.name}. Check the column layout."
    elif ext in STATEMENT_TEXT_EXTENSIONS:
        parsed = parse_statement_text(
            content, entity=file.entity, file_id=file.id, cycle_day=file.cycle_day
        )
        empty_message = PDF_EMPTY_MESSAGE
    else:
        raise UnsupportedFormatError(ext, supported=("csv", "pdf"))

    transactions = tuple(ensure_transaction_entities(parsed, [file]))
    issues: tuple[FileIssue, ...] = ()
    if not transactions:
        issues = (FileIssue(file.name, empty_message, "extraction_empty", "warning"),)
    _logger.info("%s: %d transactions", file.name, len(transactions))
    return FileOutcome(file=file, transactions=transactions, issues=issues)


def process_affidavit(
    file: FileRecord,
    text: str,
    mapper: CategoryMapper | None = None,
    *,
    existing: Iterable[Claim] = (),
) -> FileOutcome:
    _check_type(file, FINANCIAL_AFFIDAVIT)
    if file.extension not in AFFIDAVIT_EXTENSIONS:
        raise UnsupportedFormatError(file.extension, supported=("docx", "pdf"))

    claims = tuple(
        import_claims(text, mapper or default_mapper(), existing=existing, file_id=file.id)
    )
    issues: tuple[FileIssue, ...] = ()
    if not claims:
        issues = (
            FileIssue(
                file.name,
                f"No expense claims found in {file.name}. Check the document layout.",
                "extraction_empty",
                "warning",
            ),
        )
    _logger.info("%s: %d claims", file.name, len(claims))
    return FileOutcome(file=file, claims=claims, issues=issues)


def process_file(
    job: FileJob,
    *,
    settings: Settings | None = None,
    mapper: CategoryMapper | None = None,
) -> FileOutcome:
    """Dispatch one job on its triage type."""

    if job.file.type == FINANCIAL_AFFIDAVIT:
        return process_affidavit(job.file, job.content, mapper)
    return process_bank_statement(job.file, job.content, job.parser, settings=settings)


def process_batch(
    jobs: Sequence[FileJob],
    *,
    concurrency: int | None = None,
    settings: Settings | None = None,
    mapper: CategoryMapper | None = None,
) -> list[FileOutcome]:
    """Process every job, in input order, collecting per-file failures."""

    if not jobs:
        return []
    settings = settings or Settings.from_env()
    mapper = mapper or default_mapper()
    if concurrency is None:
        workers = settings.workers_for(len(jobs))
    else:
        workers = max(1, min(concurrency, len(jobs)))

    def _run(job: FileJob) -> FileOutcome:
        try:
            return process_file(job, settings=settings, mapper=mapper)
        except Exception as exc:  # noqa: BLE001
            _logger.warning("%s: %s", job.file.name, exc)
            return FileOutcome(
                file=job.file,
                issues=(FileIssue(job.file.name, str(exc), type(exc).__name__, "error"),),
            )

    return ordered_map(jobs, _run, max_workers=workers)


def collect_issues(outcomes: Iterable[FileOutcome]) -> list[FileIssue]:
    return [issue for o in outcomes for issue in o.issues]


__all__ = [
    "FileIssue",
    "FileOutcome",
    "FileJob",
    "PDF_EMPTY_MESSAGE",
    "process_bank_statement",
    "process_affidavit",
    "process_file",
    "process_batch",
    "collect_issues",
]
