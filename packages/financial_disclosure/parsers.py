"""Bank CSV → :class:`~financial_disclosure.models.Transaction` parsers.

Three interchangeable strategies, selected by the caller:

- ``standard_bank``: Standard Bank exports (``Date, Description, Amount``).
- ``fnb``: FNB exports (``Date``/``Transaction Date``, ``Description``/
  ``Details``, ``Amount``/``Balance``).
- ``generic``: unknown vendors; columns are auto-detected from a wide alias
  list and a date column is mandatory (:class:`MissingColumnError`).

All three share the same field rules:

- Dates: ``DD/MM/YYYY`` is reordered to ISO; ``-`` dates are assumed ISO and
  cut before any time component; anything else passes through unchanged.
- Amounts: currency symbols, thousands separators and whitespace are removed;
  a value that still is not numeric becomes ``0`` (never an exception).
- Account: sanitized source value when present, otherwise the caller's entity
  hint.
- Category/sub-category (generic only): formula-prefix stripped and capped.

Malformed rows are skipped, not reported; the drop count is logged at DEBUG.
A line-oriented parser for statement text (already extracted from a PDF by an
external collaborator) is provided as :func:`parse_statement_text`.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import TypeAlias

from .columns import (
    cell,
    collapse_ws,
    find_column,
    headers_of,
    read_csv_rows,
    require_column,
    sanitize_account,
    sanitize_category,
)
from .logging_setup import get_logger
from .models import UNCATEGORIZED, CycleDay, Transaction, normalize_cycle_day
from .settings import CSV_MAX_ROWS

_logger = get_logger("financial_disclosure.parsers")

# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

_AMOUNT_JUNK_RE = re.compile(r"[R$€£,\s]")
_PLAIN_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def parse_amount(raw: str | None) -> Decimal:
    """Parse a vendor amount string; non-numeric input yields ``Decimal(0)``.

    ``"R 12,345.00"`` → ``Decimal("12345.00")``. Surrounding parentheses mark
    a negative value, as in accounting exports. Only plain decimal notation is
    accepted; exponent forms such as ``"1e9"`` yield ``Decimal(0)``.
    """

    s = (raw or "").strip()
    negative = False
    if len(s) >= 2 and s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    s = _AMOUNT_JUNK_RE.sub("", s)
    if not _PLAIN_NUMBER_RE.fullmatch(s):
        return Decimal(0)
    d = Decimal(s)
    return -abs(d) if negative else d


def normalize_date(raw: str | None) -> str:
    """Normalize a vendor date string to ``YYYY-MM-DD`` where the shape is known.

    ``DD/MM/YYYY`` (and ``DD/MM/YY``) is reordered; ``YYYY-MM-DD[ T]time`` keeps
    only the date part. Unrecognized shapes are returned trimmed but otherwise
    unchanged.
    """

    s = (raw or "").strip()
    if not s:
        return ""
    first = s.split()[0]
    if "/" in first:
        parts = [p.strip() for p in first.split("/")]
        if len(parts) == 3 and all(p.isdigit() for p in parts):
            day, month, year = parts
            if len(year) == 2:
                year = "20" + year
            return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
        return s
    if "-" in first:
        return first.split("T", 1)[0]
    return s


# ---------------------------------------------------------------------------
# Shared row → Transaction mapping
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Layout:
    """Resolved header names for one CSV file (``None`` when absent)."""

    date: str | None
    description: str | None
    amount: str | None
    account: str | None = None
    category: str | None = None
    subcategory: str | None = None


_KeepRule: TypeAlias = Callable[[str, str, Decimal], bool]


def _keep_dated_with_description(date: str, desc: str, amount: Decimal) -> bool:
    return bool(date and desc)


def _keep_dated_with_description_or_amount(date: str, desc: str, amount: Decimal) -> bool:
    return bool(date and (desc or amount != 0))


def _map_rows(
    rows: Sequence[Mapping[str, str]],
    layout: _Layout,
    *,
    keep: _KeepRule,
    default_account: str,
    file_id: str | None,
    cycle_day: CycleDay,
    label: str,
) -> list[Transaction]:
    out: list[Transaction] = []
    dropped = 0
    for row in rows:
        date_raw = cell(row, layout.date)
        if not date_raw:
            dropped += 1
            continue
        date = normalize_date(date_raw)
        desc = cell(row, layout.description)
        amount = parse_amount(cell(row, layout.amount)) if layout.amount else Decimal(0)
        if not keep(date, desc, amount):
            dropped += 1
            continue

        acc = sanitize_account(cell(row, layout.account)) or default_account
        cat = UNCATEGORIZED
        subcat = None
        if layout.category is not None:
            cat = sanitize_category(cell(row, layout.category), default=UNCATEGORIZED)
        if layout.subcategory is not None:
            subcat = sanitize_category(cell(row, layout.subcategory))

        out.append(
            Transaction(
                date=date,
                desc=desc,
                clean=collapse_ws(desc),
                amount=amount,
                acc=acc,
                cat=cat,
                subcat=subcat,
                file_id=file_id,
                cycle_day=cycle_day,
            )
        )
    if dropped:
        _logger.debug("%s: skipped %d rows without a usable date/description", label, dropped)
    return out


def _default_account(entity: str | None, fallback: str) -> str:
    hint = (entity or "").strip().upper()
    return hint or fallback


# ---------------------------------------------------------------------------
# Vendor strategies
# ---------------------------------------------------------------------------


def parse_standard_bank(
    csv_text: str,
    *,
    entity: str | None = None,
    file_id: str | None = None,
    cycle_day: CycleDay | str = "last",
    file_name: str | None = None,
    max_rows: int = CSV_MAX_ROWS,
) -> list[Transaction]:
    """Parse a Standard Bank CSV export (rows need a date and a description)."""

    rows = read_csv_rows(csv_text, max_rows=max_rows)
    headers = headers_of(rows)
    layout = _Layout(
        date=find_column(headers, "date", aliases=("date",)),
        description=find_column(headers, "description", aliases=("description", "details")),
        amount=find_column(headers, "amount", aliases=("amount", "transaction amount")),
        account=find_column(headers, "account"),
    )
    return _map_rows(
        rows,
        layout,
        keep=_keep_dated_with_description,
        default_account=_default_account(entity, "PERSONAL"),
        file_id=file_id,
        cycle_day=normalize_cycle_day(cycle_day),
        label=file_name or "standard_bank",
    )


def parse_fnb(
    csv_text: str,
    *,
    entity: str | None = None,
    file_id: str | None = None,
    cycle_day: CycleDay | str = "last",
    file_name: str | None = None,
    max_rows: int = CSV_MAX_ROWS,
) -> list[Transaction]:
    """Parse an FNB CSV export (rows need a date and a description).

    FNB business exports sometimes carry only a running ``Balance`` column; it
    is used as the amount when no ``Amount`` column exists.
    """

    rows = read_csv_rows(csv_text, max_rows=max_rows)
    headers = headers_of(rows)
    layout = _Layout(
        date=find_column(headers, "date", aliases=("date", "transaction date")),
        description=find_column(headers, "description", aliases=("description", "details")),
        amount=find_column(
            headers, "amount", aliases=("amount", "transaction amount", "balance")
        ),
        account=find_column(headers, "account"),
    )
    return _map_rows(
        rows,
        layout,
        keep=_keep_dated_with_description,
        default_account=_default_account(entity, "BUSINESS"),
        file_id=file_id,
        cycle_day=normalize_cycle_day(cycle_day),
        label=file_name or "fnb",
    )


def parse_generic(
    csv_text: str,
    *,
    entity: str | None = None,
    file_id: str | None = None,
    cycle_day: CycleDay | str = "last",
    file_name: str | None = None,
    max_rows: int = CSV_MAX_ROWS,
) -> list[Transaction]:
    """Parse an unknown-vendor CSV by auto-detecting its columns.

    Raises :class:`~financial_disclosure.errors.MissingColumnError` when no
    date-like header exists. Rows are kept when they have a date and either a
    description or a non-zero amount.
    """

    rows = read_csv_rows(csv_text, max_rows=max_rows)
    if not rows:
        return []
    headers = headers_of(rows)
    layout = _Layout(
        date=require_column(headers, "date", file_name=file_name),
        description=find_column(headers, "description"),
        amount=find_column(headers, "amount"),
        account=find_column(headers, "account"),
        category=find_column(headers, "category"),
        subcategory=find_column(headers, "subcategory"),
    )
    return _map_rows(
        rows,
        layout,
        keep=_keep_dated_with_description_or_amount,
        default_account=_default_account(entity, "PERSONAL"),
        file_id=file_id,
        cycle_day=normalize_cycle_day(cycle_day),
        label=file_name or "generic",
    )


# ---------------------------------------------------------------------------
# Statement text (PDF-extracted) parser
# ---------------------------------------------------------------------------

_TEXT_LINE_RE = re.compile(
    r"(?<!\d)(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})\s+(.+?)\s+(-?R?\s?\d[\d,]*(?:\.\d+)?)(?=\s|$)",
    re.IGNORECASE,
)


def _iter_statement_lines(text: str) -> Iterator[tuple[str, str, str]]:
    for line in text.splitlines():
        if not line.strip():
            continue
        m = _TEXT_LINE_RE.search(line)
        if m:
            yield m.group(1), m.group(2), m.group(3)


def _text_date(raw: str) -> str:
    if "/" in raw:
        return normalize_date(raw)
    parts = raw.split("-")
    # ``DD-MM-YY[YY]`` in statement text; ISO dates never match the line pattern.
    day, month, year = parts
    if len(year) == 2:
        year = "20" + year
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def parse_statement_text(
    text: str,
    *,
    entity: str | None = None,
    file_id: str | None = None,
    cycle_day: CycleDay | str = "last",
) -> list[Transaction]:
    """Extract ``<date> <description> <amount>`` lines from statement text.

    Only the first amount following the description is used. Lines with a zero
    amount or no description are skipped.
    """

    account = _default_account(entity, "PERSONAL")
    day = normalize_cycle_day(cycle_day)
    out: list[Transaction] = []
    for date_raw, desc_raw, amount_raw in _iter_statement_lines(text):
        amount = parse_amount(amount_raw)
        desc = desc_raw.strip()
        if not desc or amount == 0:
            continue
        out.append(
            Transaction(
                date=_text_date(date_raw),
                desc=desc,
                clean=collapse_ws(desc),
                amount=amount,
                acc=account,
                file_id=file_id,
                cycle_day=day,
            )
        )
    return out


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

STANDARD_BANK = "standard_bank"
FNB = "fnb"
GENERIC = "generic"

_PARSER_ALIASES: dict[str, str] = {
    "standard_bank": STANDARD_BANK,
    "standardbank": STANDARD_BANK,
    "sbsa": STANDARD_BANK,
    "fnb": FNB,
    "first_national_bank": FNB,
    "generic": GENERIC,
    "generic_csv": GENERIC,
}

_PARSERS: dict[str, Callable[..., list[Transaction]]] = {
    STANDARD_BANK: parse_standard_bank,
    FNB: parse_fnb,
    GENERIC: parse_generic,
}


def resolve_parser_name(parser: str | None) -> str:
    """Canonical parser key; unknown or empty names fall back to ``generic``."""

    p = (parser or "").strip().lower().replace(" ", "_").replace("-", "_")
    return _PARSER_ALIASES.get(p, GENERIC)


class StatementParser:
    """Parse bank CSV text with a caller-selected vendor strategy.

    Usage
    -----
    txs = StatementParser.parse(parser="fnb", csv_text=..., entity="BUSINESS")
    """

    @staticmethod
    def parse(
        *,
        parser: str | None,
        csv_text: str,
        entity: str | None = None,
        file_id: str | None = None,
        cycle_day: CycleDay | str = "last",
        file_name: str | None = None,
        max_rows: int = CSV_MAX_ROWS,
    ) -> list[Transaction]:
        fn = _PARSERS[resolve_parser_name(parser)]
        return fn(
            csv_text,
            entity=entity,
            file_id=file_id,
            cycle_day=cycle_day,
            file_name=file_name,
            max_rows=max_rows,
        )

    @staticmethod
    def names() -> tuple[str, ...]:
        return tuple(_PARSERS)


__all__ = [
    "StatementParser",
    "STANDARD_BANK",
    "FNB",
    "GENERIC",
    "parse_amount",
    "normalize_date",
    "parse_standard_bank",
    "parse_fnb",
    "parse_generic",
    "parse_statement_text",
    "resolve_parser_name",
]
