"""Proof of claimed expenses against bank data, and statement coverage checks.

Two windows are used and they are anchored differently:

- Rolling proven averages anchor on the latest transaction date in the data,
  truncated to the first of its month, then step back ``N - 1`` months. The
  sum of expense outflows in that window is divided by ``N`` even when some
  months have no activity, so a gap lowers the proven average.
- Missing-statement detection anchors on today's date. A statement cycle that
  has not ended yet is never reported as missing.

Transactions whose date cannot be read as ISO ``YYYY-MM-DD`` are ignored by
every window computation here.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Literal, TypeAlias

from .models import (
    UNCATEGORIZED,
    Claim,
    CycleDay,
    Transaction,
    normalize_cycle_day,
    normalize_status,
)

PERIOD_MONTHS: dict[str, int] = {"1M": 1, "3M": 3, "6M": 6}
SHORTFALL_THRESHOLD = Decimal("0.95")
OVER_THRESHOLD = Decimal("1.05")
MISSING_CYCLES_CHECKED = 6
TRANSFER_MATCH_DAYS = 3

_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

ProofLabel: TypeAlias = Literal["No Claim", "Shortfall", "Over", "Verified"]
AlertType: TypeAlias = Literal["critical", "warning", "info"]


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------


def parse_iso_date(value: str | date | None) -> date | None:
    if isinstance(value, date):
        return value
    s = (value or "").strip()[:10]
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def _shift_months(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def window_start(latest: str | date, months: int) -> date | None:
    """First day of the month ``months - 1`` months before ``latest``'s month."""

    anchor = parse_iso_date(latest)
    if anchor is None:
        return None
    year, month = _shift_months(anchor.year, anchor.month, -(months - 1))
    return date(year, month, 1)


def latest_transaction_date(transactions: Iterable[Transaction]) -> str | None:
    """Maximum ISO date across ``transactions``; ``None`` when there is none."""

    dates = [t.date for t in transactions if parse_iso_date(t.date) is not None]
    return max(dates) if dates else None


def proof_months(period: str | None) -> int:
    return 3 if period == "3M" else 6


def filter_by_period(
    transactions: Iterable[Transaction], period: str, latest: str | date | None
) -> list[Transaction]:
    """Transactions on or after the start of a ``1M``/``3M``/``6M`` window."""

    if latest is None:
        return list(transactions)
    start = window_start(latest, PERIOD_MONTHS.get(period, 1))
    if start is None:
        return list(transactions)
    out: list[Transaction] = []
    for t in transactions:
        d = parse_iso_date(t.date)
        if d is not None and d >= start:
            out.append(t)
    return out


# ---------------------------------------------------------------------------
# Proven averages and classification
# ---------------------------------------------------------------------------


def proven_average(
    transactions: Iterable[Transaction],
    category: str,
    months: int,
    latest: str | date | None,
) -> Decimal:
    """Average monthly expense outflow for ``category`` over ``months`` months.

    The window ends at the data's end (no upper cap) and starts on the first of
    the month ``months - 1`` months before ``latest``. Returns ``0`` without a
    ``latest`` date.
    """

    if months <= 0:
        raise ValueError(f"months must be positive, got {months}")
    if latest is None:
        return Decimal(0)
    start = window_start(latest, months)
    if start is None:
        return Decimal(0)
    total = Decimal(0)
    for t in transactions:
        if t.cat != category or t.amount >= 0:
            continue
        d = parse_iso_date(t.date)
        if d is not None and d >= start:
            total += abs(t.amount)
    return total / months


@dataclass(frozen=True, slots=True)
class ProofResult:
    ratio: Decimal
    label: ProofLabel


def classify_proof(proven: Decimal, claimed: Decimal | None) -> ProofResult:
    """Ratio of proven to claimed and its label (0.95 / 1.05 breakpoints)."""

    if not claimed:
        return ProofResult(Decimal(0), "No Claim")
    ratio = proven / claimed
    if ratio < SHORTFALL_THRESHOLD:
        return ProofResult(ratio, "Shortfall")
    if ratio > OVER_THRESHOLD:
        return ProofResult(ratio, "Over")
    return ProofResult(ratio, "Verified")


@dataclass(frozen=True, slots=True)
class UnprovenClaim:
    category: str
    claimed: Decimal
    proven: Decimal
    shortfall: Decimal


def unproven_claims(
    claims: Iterable[Claim],
    transactions: Sequence[Transaction],
    proof_period: str = "6M",
    latest: str | date | None = None,
) -> list[UnprovenClaim]:
    """Claims proven below 95 %, largest shortfall first."""

    months = proof_months(proof_period)
    if latest is None:
        latest = latest_transaction_date(transactions)
    out: list[UnprovenClaim] = []
    for claim in claims:
        proven = proven_average(transactions, claim.category, months, latest)
        if proven < claim.claimed * SHORTFALL_THRESHOLD:
            out.append(
                UnprovenClaim(
                    category=claim.category,
                    claimed=claim.claimed,
                    proven=proven,
                    shortfall=claim.claimed - proven,
                )
            )
    out.sort(key=lambda u: u.shortfall, reverse=True)
    return out


@dataclass(frozen=True, slots=True)
class VerificationRow:
    claim_id: str
    category: str
    claimed: Decimal
    proven: Decimal
    ratio: Decimal
    label: ProofLabel


def verification_report(
    claims: Iterable[Claim],
    transactions: Sequence[Transaction],
    months: int = 6,
    latest: str | date | None = None,
) -> list[VerificationRow]:
    if latest is None:
        latest = latest_transaction_date(transactions)
    rows: list[VerificationRow] = []
    for claim in claims:
        proven = proven_average(transactions, claim.category, months, latest)
        result = classify_proof(proven, claim.claimed)
        rows.append(
            VerificationRow(
                claim_id=claim.id,
                category=claim.category,
                claimed=claim.claimed,
                proven=proven,
                ratio=result.ratio,
                label=result.label,
            )
        )
    return rows


# ---------------------------------------------------------------------------
# Missing statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CyclePeriod:
    start: date
    end: date
    label: str


@dataclass(frozen=True, slots=True)
class MissingStatements:
    """Statement cycles without any transaction for one account, oldest first."""

    account: str
    cycle_day: CycleDay
    periods: tuple[CyclePeriod, ...]

    @property
    def missing(self) -> list[str]:
        return [p.label for p in self.periods]


def cycle_period(year: int, month: int, cycle_day: CycleDay) -> CyclePeriod:
    """The statement cycle that closes in ``year``/``month``.

    ``"last"`` is the calendar month. A numeric day (clamped to the month's
    length) closes the cycle on that day; it opens the day after the previous
    month's (clamped) closing day.
    """

    month_label = f"{_MONTH_ABBR[month - 1]} {year}"
    if cycle_day == "last":
        return CyclePeriod(
            start=date(year, month, 1),
            end=date(year, month, _days_in_month(year, month)),
            label=month_label,
        )
    day = int(cycle_day)
    end = date(year, month, min(day, _days_in_month(year, month)))
    py, pm = _shift_months(year, month, -1)
    start = date(py, pm, min(day, _days_in_month(py, pm))) + timedelta(days=1)
    return CyclePeriod(start=start, end=end, label=f"End {end.day} {month_label}")


def missing_statements(
    transactions: Iterable[Transaction], *, now: date | None = None
) -> list[MissingStatements]:
    """Per account, the last six closed cycles that have no transactions.

    An account's cycle day is taken from its latest-dated transaction. Cycles
    ending after ``now`` (default: today) are skipped.
    """

    today = now or date.today()
    by_account: dict[str, list[date]] = {}
    cycle_days: dict[str, CycleDay] = {}
    latest_seen: dict[str, date] = {}
    for t in transactions:
        if not t.acc:
            continue
        dates = by_account.setdefault(t.acc, [])
        cycle_days.setdefault(t.acc, "last")
        d = parse_iso_date(t.date)
        if d is None:
            continue
        dates.append(d)
        if t.acc not in latest_seen or d > latest_seen[t.acc]:
            latest_seen[t.acc] = d
            cycle_days[t.acc] = normalize_cycle_day(t.cycle_day)

    out: list[MissingStatements] = []
    for account, dates in by_account.items():
        cycle_day = cycle_days[account]
        periods: list[CyclePeriod] = []
        for i in range(MISSING_CYCLES_CHECKED):
            year, month = _shift_months(today.year, today.month, -i)
            period = cycle_period(year, month, cycle_day)
            if period.end > today:
                continue
            if not any(period.start <= d <= period.end for d in dates):
                periods.append(period)
        if periods:
            periods.reverse()
            out.append(MissingStatements(account, cycle_day, tuple(periods)))
    return out


# ---------------------------------------------------------------------------
# Dashboard alerts
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Alert:
    id: str
    type: AlertType
    title: str
    msg: str
    value: int


def _plural(n: int, singular: str, plural: str | None = None) -> str:
    return singular if n == 1 else (plural or singular + "s")


def is_transfer(tx: Transaction) -> bool:
    cat = (tx.cat or "").lower()
    return "inter-account" in cat or cat in ("inter account", "interaccount")


def unmatched_transfers(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Inter-account transfers with no opposite-signed twin within three days."""

    transfers = [t for t in transactions if is_transfer(t)]
    out: list[Transaction] = []
    for tx in transfers:
        tx_date = parse_iso_date(tx.date)
        matched = False
        for other in transfers:
            if other.id == tx.id or abs(other.amount) != abs(tx.amount):
                continue
            if (tx.amount > 0 and other.amount > 0) or (tx.amount < 0 and other.amount < 0):
                continue
            other_date = parse_iso_date(other.date)
            if tx_date and other_date and abs((tx_date - other_date).days) <= TRANSFER_MATCH_DAYS:
                matched = True
                break
        if not matched:
            out.append(tx)
    return out


def month_gaps(transactions: Iterable[Transaction]) -> dict[str, list[str]]:
    """Per account, ``YYYY-MM`` months without data between its first and last month."""

    months: dict[str, set[tuple[int, int]]] = defaultdict(set)
    for t in transactions:
        d = parse_iso_date(t.date)
        if d is None or not t.acc:
            continue
        months[t.acc].add((d.year, d.month))

    gaps: dict[str, list[str]] = {}
    for account, seen in months.items():
        if len(seen) < 2:
            continue
        (y, m), last = min(seen), max(seen)
        missing: list[str] = []
        while (y, m) <= last:
            if (y, m) not in seen:
                missing.append(f"{y}-{m:02d}")
            y, m = _shift_months(y, m, 1)
        if missing:
            gaps[account] = missing
    return gaps


def compute_alerts(
    transactions: Sequence[Transaction],
    claims: Sequence[Claim],
    proof_period: str = "6M",
) -> list[Alert]:
    alerts: list[Alert] = []

    unproven = unproven_claims(claims, transactions, proof_period)
    if unproven:
        n = len(unproven)
        alerts.append(
            Alert(
                "unproven",
                "critical",
                "Unproven Monthly Expense Claims",
                f"{n} expense {_plural(n, 'category', 'categories')} not fully proven",
                n,
            )
        )

    uncategorized = sum(1 for t in transactions if not t.cat or t.cat == UNCATEGORIZED)
    if uncategorized:
        n = uncategorized
        alerts.append(
            Alert(
                "uncategorized",
                "warning",
                "Uncategorized Transactions",
                f"{n} {_plural(n, 'transaction')} {_plural(n, 'needs', 'need')} to be categorized",
                n,
            )
        )

    flagged = sum(1 for t in transactions if t.flagged)
    if flagged:
        alerts.append(
            Alert(
                "flagged",
                "critical",
                "Flagged as Suspicious",
                f"{flagged} {_plural(flagged, 'transaction')} flagged for review",
                flagged,
            )
        )

    unmatched = len(unmatched_transfers(transactions))
    if unmatched:
        alerts.append(
            Alert(
                "unmatched-transfers",
                "warning",
                "Unmatched Inter-Account",
                f"{unmatched} inter-account {_plural(unmatched, 'transfer')} "
                "without matching entry in another account",
                unmatched,
            )
        )

    misc = sum(1 for t in transactions if "miscellaneous" in (t.cat or "").lower())
    if misc:
        alerts.append(
            Alert(
                "miscellaneous",
                "warning",
                "Miscellaneous Expenses",
                f"{misc} {_plural(misc, 'transaction')} categorized as miscellaneous",
                misc,
            )
        )

    for account, missing in month_gaps(transactions).items():
        n = len(missing)
        shown = ", ".join(missing[:3]) + ("..." if n > 3 else "")
        alerts.append(
            Alert(
                f"missing-{account}",
                "critical",
                f"Missing Periods: {account}",
                f"{n} {_plural(n, 'month')} missing: {shown}",
                n,
            )
        )

    total = len(transactions)
    if total:
        confirmed = sum(1 for t in transactions if normalize_status(t.status) == "confirmed")
        pct = round(confirmed * 100 / total)
        alerts.append(
            Alert(
                "confirmation-status",
                "info",
                "Transaction Confirmation Status",
                f"{confirmed} of {total} transactions confirmed ({pct}%)",
                pct,
            )
        )

    return alerts


__all__ = [
    "PERIOD_MONTHS",
    "ProofResult",
    "UnprovenClaim",
    "VerificationRow",
    "CyclePeriod",
    "MissingStatements",
    "Alert",
    "parse_iso_date",
    "window_start",
    "latest_transaction_date",
    "proof_months",
    "filter_by_period",
    "proven_average",
    "classify_proof",
    "unproven_claims",
    "verification_report",
    "cycle_period",
    "missing_statements",
    "unmatched_transfers",
    "month_gaps",
    "compute_alerts",
]
