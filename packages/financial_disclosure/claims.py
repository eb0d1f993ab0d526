"""Extract claimed monthly expenses from affidavit text.

Affidavits arrive as plain text (DOCX/PDF text extraction happens upstream).
No single pattern handles every document, so several independent strategies
run in a fixed priority order and their results are merged with
first-match-wins de-duplication on the case-insensitive category name:

1. ``segmented``: every ``Category:`` anchor opens a segment that runs to the
   next anchor; the first amount in the segment is the claim and the text
   before it the description (an optional reference code may follow).
2. ``table_rows``: one claim per line, either ``Category: description amount
   [reference]`` or pipe-delimited cells.
3. ``colon_amount``: ``Category: [R]amount`` anywhere in the text.
4. ``header_blocks``: a short capitalised line without digits acts as a
   header; the first amount on a following line is attributed to it until a
   blank line or divider.
5. ``numbered_list``: ``1. Category: R amount`` style lists.

Amounts outside ``[100, 1_000_000)`` are ignored everywhere, which filters
page numbers, years and account numbers. Header-like categories (``Total``,
``Income``, ``Schedule``...) are discarded.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, TypeAlias

from .logging_setup import get_logger
from .mapper import CategoryMapper
from .models import Claim

_logger = get_logger("financial_disclosure.claims")

MIN_CLAIM_AMOUNT = Decimal(100)
MAX_CLAIM_AMOUNT = Decimal(1_000_000)
MAX_TEXT_CHARS = 2_000_000

STOP_WORDS: frozenset[str] = frozenset(
    {"total", "income", "shortfall", "schedule", "description", "amount", "reference"}
)

# Category label: a capitalised word plus up to four more words on the same line.
_CATEGORY = r"[A-Z][A-Za-z&/\-]*(?:[ \t]+[A-Za-z&/\-]+){0,4}"
# 3-6 digit amount (or comma-grouped thousands), not part of a date, id or word.
_AMOUNT = (
    r"(?<![\w.,/\-])R?[ \t]?"
    r"(?P<amount>\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d{3,6}(?:\.\d{1,2})?)"
    r"(?![\d,/]|\.\d)"
)
_REFERENCE = r"(?P<ref>[A-Z]{2,6}\d{1,4})"

_ANCHOR_RE = re.compile(rf"(?<![A-Za-z])(?P<cat>{_CATEGORY})[ \t]*:")
_AMOUNT_RE = re.compile(rf"{_AMOUNT}(?:[ \t]+{_REFERENCE}\b)?")
_AMOUNT_CELL_RE = re.compile(rf"^{_AMOUNT}$")
_REFERENCE_CELL_RE = re.compile(rf"^{_REFERENCE}$")
_TABLE_ROW_RE = re.compile(
    rf"^\s*(?P<cat>{_CATEGORY})[ \t]*:[ \t]*(?P<desc>.*?)[ \t]*{_AMOUNT}"
    rf"(?:[ \t]+{_REFERENCE})?\s*$"
)
_COLON_AMOUNT_RE = re.compile(
    r"(?<![A-Za-z])(?P<cat>[A-Z][A-Za-z /]*?)[ \t]*:[ \t]*R?[ \t]*(?P<amount>[\d,]+(?:\.\d+)?)"
)
_HEADER_RE = re.compile(r"^[A-Z][A-Za-z\s/]+$")
_DIVIDER_RE = re.compile(r"^[=\-]{3,}$")
_NUMBERED_RE = re.compile(
    r"^\s*\d+[.)]\s*(?P<cat>[A-Z][A-Za-z /]*?)[:;]?[ \t]*R?[ \t]*(?P<amount>[\d,]+(?:\.\d+)?)",
    re.MULTILINE,
)
_DESC_TRIM = " \t-:|,;"


@dataclass(frozen=True, slots=True)
class ClaimCandidate:
    """A claim as found by one strategy, before de-duplication."""

    category: str
    amount: Decimal
    desc: str = ""
    reference: str | None = None
    strategy: str = ""


Strategy: TypeAlias = Callable[[str], Iterator[ClaimCandidate]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_amount(raw: str) -> Decimal | None:
    try:
        d = Decimal(raw.replace(",", ""))
    except InvalidOperation:
        return None
    if MIN_CLAIM_AMOUNT <= d < MAX_CLAIM_AMOUNT:
        return d
    return None


def _clean_category(raw: str) -> str:
    return " ".join(raw.split()).strip(_DESC_TRIM)


def is_stop_category(category: str) -> bool:
    words = category.lower().split()
    return not words or words[0].strip(_DESC_TRIM) in STOP_WORDS


def _clean_desc(raw: str) -> str:
    return " ".join(raw.split()).strip(_DESC_TRIM)


def _first_amount(text: str) -> tuple[re.Match[str], Decimal] | None:
    for m in _AMOUNT_RE.finditer(text):
        amount = _to_amount(m.group("amount"))
        if amount is not None:
            return m, amount
    return None


# ---------------------------------------------------------------------------
# Strategies (priority order)
# ---------------------------------------------------------------------------


def segmented(text: str) -> Iterator[ClaimCandidate]:
    anchors = list(_ANCHOR_RE.finditer(text))
    for i, anchor in enumerate(anchors):
        category = _clean_category(anchor.group("cat"))
        if is_stop_category(category):
            continue
        end = anchors[i + 1].start() if i + 1 < len(anchors) else len(text)
        segment = text[anchor.end() : end]
        found = _first_amount(segment)
        if found is None:
            continue
        m, amount = found
        yield ClaimCandidate(
            category=category,
            amount=amount,
            desc=_clean_desc(segment[: m.start()]),
            reference=m.group("ref"),
            strategy="segmented",
        )


def _pipe_row(line: str) -> ClaimCandidate | None:
    cells = [c.strip() for c in line.strip().strip("|").split("|")]
    cells = [c for c in cells if c]
    if len(cells) < 2:
        return None
    category = _clean_category(cells[0])
    if not re.fullmatch(_CATEGORY, category):
        return None
    for idx in range(1, len(cells)):
        m = _AMOUNT_CELL_RE.match(cells[idx])
        if not m:
            continue
        amount = _to_amount(m.group("amount"))
        if amount is None:
            continue
        ref = None
        if idx + 1 < len(cells) and _REFERENCE_CELL_RE.match(cells[idx + 1]):
            ref = cells[idx + 1]
        return ClaimCandidate(
            category=category,
            amount=amount,
            desc=_clean_desc(" ".join(cells[1:idx])),
            reference=ref,
            strategy="table_rows",
        )
    return None


def table_rows(text: str) -> Iterator[ClaimCandidate]:
    for line in text.splitlines():
        if "|" in line:
            cand = _pipe_row(line)
        else:
            cand = None
            m = _TABLE_ROW_RE.match(line)
            if m:
                amount = _to_amount(m.group("amount"))
                if amount is not None:
                    cand = ClaimCandidate(
                        category=_clean_category(m.group("cat")),
                        amount=amount,
                        desc=_clean_desc(m.group("desc")),
                        reference=m.group("ref"),
                        strategy="table_rows",
                    )
        if cand is not None and not is_stop_category(cand.category):
            yield cand


def colon_amount(text: str) -> Iterator[ClaimCandidate]:
    for m in _COLON_AMOUNT_RE.finditer(text):
        category = _clean_category(m.group("cat"))
        amount = _to_amount(m.group("amount"))
        if amount is None or not category or is_stop_category(category):
            continue
        yield ClaimCandidate(category=category, amount=amount, strategy="colon_amount")


def header_blocks(text: str) -> Iterator[ClaimCandidate]:
    current = ""
    claimed: set[str] = set()
    for line in text.splitlines():
        trimmed = line.strip()
        if not trimmed or _DIVIDER_RE.match(trimmed):
            current = ""
            continue
        if _HEADER_RE.match(trimmed) and len(trimmed) < 40:
            current = _clean_category(trimmed)
            continue
        if not current or current.lower() in claimed or is_stop_category(current):
            continue
        found = _first_amount(trimmed)
        if found is None:
            continue
        claimed.add(current.lower())
        yield ClaimCandidate(category=current, amount=found[1], strategy="header_blocks")


def numbered_list(text: str) -> Iterator[ClaimCandidate]:
    for m in _NUMBERED_RE.finditer(text):
        category = _clean_category(m.group("cat"))
        amount = _to_amount(m.group("amount"))
        if amount is None or not category or is_stop_category(category):
            continue
        yield ClaimCandidate(category=category, amount=amount, strategy="numbered_list")


STRATEGIES: tuple[Strategy, ...] = (
    segmented,
    table_rows,
    colon_amount,
    header_blocks,
    numbered_list,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def merge_candidates(batches: Iterable[Iterable[ClaimCandidate]]) -> list[ClaimCandidate]:
    """Flatten strategy outputs keeping the first candidate per category."""

    by_key: dict[str, ClaimCandidate] = {}
    for batch in batches:
        for cand in batch:
            by_key.setdefault(cand.category.lower(), cand)
    return list(by_key.values())


def extract_candidates(
    text: str, *, strategies: Sequence[Strategy] = STRATEGIES
) -> list[ClaimCandidate]:
    if len(text) > MAX_TEXT_CHARS:
        _logger.warning("document text truncated to %d characters", MAX_TEXT_CHARS)
        text = text[:MAX_TEXT_CHARS]
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return merge_candidates(strategy(text) for strategy in strategies)


def extract_claims(
    text: str,
    *,
    file_id: str | None = None,
    strategies: Sequence[Strategy] = STRATEGIES,
) -> list[Claim]:
    """Extract de-duplicated claims (raw, unmapped categories) from ``text``."""

    claims = [
        Claim(
            category=c.category,
            claimed=c.amount,
            desc=c.desc,
            reference=c.reference,
            file_id=file_id,
            source="imported",
        )
        for c in extract_candidates(text, strategies=strategies)
    ]
    _logger.debug("extracted %d claims", len(claims))
    return claims


def import_claims(
    text: str,
    mapper: CategoryMapper,
    *,
    existing: Iterable[Claim] = (),
    file_id: str | None = None,
) -> list[Claim]:
    """Extract claims, map their categories, and drop already-present categories.

    A claim is dropped when its mapped category (case-insensitive) is already
    in ``existing`` or was produced earlier in this import.
    """

    seen = {c.category.lower() for c in existing}
    out: list[Claim] = []
    for claim in extract_claims(text, file_id=file_id):
        mapped = replace(claim, category=mapper.map(claim.category))
        key = mapped.category.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(mapped)
    return out


def validate_claims(claims: Iterable[Mapping[str, Any]]) -> list[str]:
    """Return human-readable problems for externally supplied claim dicts."""

    errors: list[str] = []
    for index, claim in enumerate(claims):
        if not claim.get("id"):
            errors.append(f"Claim {index}: missing id")
        if not claim.get("category"):
            errors.append(f"Claim {index}: missing category")
        claimed = claim.get("claimed")
        numeric = isinstance(claimed, (int, float, Decimal)) and not isinstance(claimed, bool)
        if not numeric or not claimed > 0:
            errors.append(f"Claim {index}: invalid claimed amount")
    return errors


__all__ = [
    "ClaimCandidate",
    "STRATEGIES",
    "STOP_WORDS",
    "MIN_CLAIM_AMOUNT",
    "MAX_CLAIM_AMOUNT",
    "segmented",
    "table_rows",
    "colon_amount",
    "header_blocks",
    "numbered_list",
    "is_stop_category",
    "merge_candidates",
    "extract_candidates",
    "extract_claims",
    "import_claims",
    "validate_claims",
]
