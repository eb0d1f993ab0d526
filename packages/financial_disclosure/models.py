"""Canonical records produced by the extraction layer.

Records are frozen, slotted dataclasses: extraction creates them in bulk per
uploaded file and never mutates them afterwards. Downstream steps that attach
information (e.g. entity attribution) return new instances via
:func:`dataclasses.replace`.

Monetary values are ``Decimal``. Dates are ISO ``YYYY-MM-DD`` strings, kept as
strings so that vendor dates which cannot be normalized pass through
unchanged (see :mod:`.parsers`).
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Literal, TypeAlias

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

ENTITIES: tuple[str, ...] = ("PERSONAL", "BUSINESS", "TRUST", "CREDIT", "SPOUSE")

UNCATEGORIZED = "Uncategorized"

BANK_STATEMENT = "Bank Statement"
FINANCIAL_AFFIDAVIT = "Financial Affidavit"
FILE_TYPES: tuple[str, ...] = (BANK_STATEMENT, FINANCIAL_AFFIDAVIT)

Status: TypeAlias = Literal["pending", "confirmed", "rejected"]
CycleDay: TypeAlias = int | Literal["last"]

_STATUSES: frozenset[str] = frozenset({"pending", "confirmed", "rejected"})
# Older case files used the review labels directly.
_LEGACY_STATUS: dict[str, str] = {"proven": "confirmed", "flagged": "rejected"}

CLAIM_SOURCES: frozenset[str] = frozenset({"manual", "imported"})


def new_id() -> str:
    return uuid.uuid4().hex


def normalize_status(value: Any) -> Status:
    """Map a stored status (including legacy aliases) to the canonical tag."""

    s = str(value or "").strip().lower()
    s = _LEGACY_STATUS.get(s, s)
    return s if s in _STATUSES else "pending"  # type: ignore[return-value]


def normalize_cycle_day(value: Any) -> CycleDay:
    """Return ``"last"`` or a day-of-month in 1..31."""

    if isinstance(value, bool):
        return "last"
    if isinstance(value, int):
        day = value
    else:
        s = str(value or "").strip().lower()
        if not s.isdigit():
            return "last"
        day = int(s)
    return day if 1 <= day <= 31 else "last"


def to_decimal(value: Any) -> Decimal | None:
    """Coerce ints/floats/strings to ``Decimal``; ``None`` when not a finite number."""

    if value is None or isinstance(value, bool):
        return None
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single bank-statement line in canonical form.

    ``desc`` keeps the source description (trimmed); ``clean`` is the
    whitespace-collapsed variant used for display and matching. ``acc`` is the
    raw account label from the source, not an entity tag; ``entity`` is set by
    attribution and stays ``None`` when unresolved.
    """

    date: str
    desc: str
    clean: str
    amount: Decimal
    acc: str
    id: str = field(default_factory=new_id)
    entity: str | None = None
    cat: str = UNCATEGORIZED
    subcat: str | None = None
    status: Status = "pending"
    file_id: str | None = None
    flagged: bool = False
    cycle_day: CycleDay = "last"

    @property
    def type(self) -> Literal["expense", "income"]:
        return "expense" if self.amount < 0 else "income"


@dataclass(frozen=True, slots=True)
class Claim:
    """A claimed monthly expense under a category.

    ``claimed`` must be a positive finite number; anything else raises
    ``ValueError`` at construction instead of being coerced to zero.
    """

    category: str
    claimed: Decimal
    desc: str = ""
    reference: str | None = None
    file_id: str | None = None
    source: str = "imported"
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        amount = to_decimal(self.claimed)
        if amount is None or amount <= 0:
            raise ValueError(f"claimed amount must be a positive number, got {self.claimed!r}")
        if not isinstance(self.claimed, Decimal):
            object.__setattr__(self, "claimed", amount)
        if not (self.category or "").strip():
            raise ValueError("claim category must be non-empty")
        if self.source not in CLAIM_SOURCES:
            raise ValueError(
                f"Unsupported claim source: {self.source!r}. Allowed: {sorted(CLAIM_SOURCES)}"
            )


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Uploaded-file metadata; owned by the host application, referenced by id."""

    id: str
    name: str
    type: str
    entity: str | None = None
    cycle_day: CycleDay = "last"

    @property
    def extension(self) -> str:
        _, dot, ext = self.name.rpartition(".")
        return ext.lower() if dot else ""


def amount_as_number(d: Decimal) -> int | float:
    """JSON-friendly number for a ``Decimal`` (integral values stay ints)."""

    if d == d.to_integral_value():
        return int(d)
    f = float(d)
    return f if math.isfinite(f) else 0


__all__ = [
    "ENTITIES",
    "UNCATEGORIZED",
    "BANK_STATEMENT",
    "FINANCIAL_AFFIDAVIT",
    "FILE_TYPES",
    "Status",
    "CycleDay",
    "Transaction",
    "Claim",
    "FileRecord",
    "new_id",
    "normalize_status",
    "normalize_cycle_day",
    "to_decimal",
    "amount_as_number",
]
