"""CSV text → header-keyed rows, and case-insensitive semantic column lookup.

Parsing follows RFC 4180 via the stdlib :mod:`csv` module. Headers are kept
verbatim (exports vary in capitalization and spacing); callers locate the
column they need with :func:`find_column` using a priority-ordered alias list.

Field sanitizers for account/category text also live here, since every parser
applies the same limits.
"""

from __future__ import annotations

import csv
import re
from collections.abc import Mapping, Sequence
from io import StringIO

from .errors import MissingColumnError
from .logging_setup import get_logger
from .settings import CSV_MAX_ROWS

_logger = get_logger("financial_disclosure.columns")

ACCOUNT_MAX_LEN = 200
CATEGORY_MAX_LEN = 100

# Priority-ordered aliases per semantic column; the first header that matches
# (case-insensitively, after trimming) wins.
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("date", "transaction date", "posting date", "value date"),
    "description": ("description", "details", "narrative", "transaction description", "memo"),
    "amount": ("amount", "transaction amount", "debit", "credit", "balance"),
    "account": ("account", "account name", "account number", "acc"),
    "category": ("category", "cat"),
    "subcategory": ("sub-category", "subcategory", "sub category", "subcat"),
}

_FORMULA_PREFIXES = ("=", "+", "-", "@")
_WS_RE = re.compile(r"\s+")


def read_csv_rows(csv_text: str, *, max_rows: int = CSV_MAX_ROWS) -> list[dict[str, str]]:
    """Parse ``csv_text`` into header-keyed rows.

    Blank lines and rows the :mod:`csv` module rejects (an oversized field,
    say) are skipped. Rows past ``max_rows`` are dropped with a warning rather
    than failing the file. Extra cells without a header (``None`` keys
    from :class:`csv.DictReader`) are discarded and missing cells become ``""``.
    """

    rows: list[dict[str, str]] = []
    truncated = 0
    malformed = 0
    with StringIO(csv_text.lstrip("\ufeff")) as f:
        reader = csv.DictReader(f)
        while True:
            try:
                row = next(reader)
            except StopIteration:
                break
            except csv.Error:
                malformed += 1
                continue
            if all((v or "").strip() == "" for k, v in row.items() if k is not None):
                continue
            if len(rows) >= max_rows:
                truncated += 1
                continue
            rows.append({k: (v if v is not None else "") for k, v in row.items() if k is not None})
    if truncated:
        _logger.warning(
            "CSV exceeds %d rows; dropped %d trailing rows", max_rows, truncated
        )
    if malformed:
        _logger.debug("Skipped %d malformed CSV rows", malformed)
    return rows


def headers_of(rows: Sequence[Mapping[str, str]]) -> list[str]:
    return list(rows[0].keys()) if rows else []


def find_column(
    headers: Sequence[str], semantic: str, *, aliases: Sequence[str] | None = None
) -> str | None:
    """Return the first header matching an alias of ``semantic`` (case-insensitive).

    ``aliases`` overrides the default alias list for vendor formats that only
    ever use a subset of the generic names.
    """

    lowered = [h.strip().lower() for h in headers]
    for alias in aliases if aliases is not None else COLUMN_ALIASES[semantic]:
        try:
            return headers[lowered.index(alias)]
        except ValueError:
            continue
    return None


def require_column(
    headers: Sequence[str], semantic: str, *, file_name: str | None = None
) -> str:
    """Like :func:`find_column` but raise :class:`MissingColumnError` when absent."""

    col = find_column(headers, semantic)
    if col is None:
        raise MissingColumnError(semantic, file_name=file_name, headers=headers)
    return col


def cell(row: Mapping[str, str], column: str | None) -> str:
    if column is None:
        return ""
    return (row.get(column) or "").strip()


def collapse_ws(value: str | None) -> str:
    if not value:
        return ""
    return _WS_RE.sub(" ", str(value)).strip()


def sanitize_account(value: str | None) -> str:
    """Trim, collapse internal whitespace and cap at 200 characters."""

    return collapse_ws(value)[:ACCOUNT_MAX_LEN]


def sanitize_category(value: str | None, *, default: str | None = None) -> str | None:
    """Strip one leading spreadsheet-formula character and cap at 100 characters.

    Returns ``default`` when nothing is left.
    """

    s = collapse_ws(value)
    if s.startswith(_FORMULA_PREFIXES):
        s = s[1:].strip()
    s = s[:CATEGORY_MAX_LEN].strip()
    return s or default


__all__ = [
    "COLUMN_ALIASES",
    "ACCOUNT_MAX_LEN",
    "CATEGORY_MAX_LEN",
    "read_csv_rows",
    "headers_of",
    "find_column",
    "require_column",
    "cell",
    "collapse_ws",
    "sanitize_account",
    "sanitize_category",
]
