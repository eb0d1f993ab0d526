from datetime import date
from decimal import Decimal

import pytest

from financial_disclosure.analysis import (
    classify_proof,
    compute_alerts,
    cycle_period,
    filter_by_period,
    latest_transaction_date,
    missing_statements,
    month_gaps,
    proven_average,
    unmatched_transfers,
    unproven_claims,
    verification_report,
    window_start,
)

from tests.helpers.records import make_claim, make_tx


@pytest.fixture
def ledger():
    return [
        make_tx("2024-01-15", -300, cat="Groceries"),
        make_tx("2024-02-10", -600, cat="Groceries"),
        make_tx("2024-03-05", -900, cat="Groceries"),
        make_tx("2024-03-06", 50, cat="Groceries", desc="Refund"),
        make_tx("2024-03-01", -9000, cat="Rent"),
        make_tx("15 Mar 2024", -1000, cat="Groceries"),
    ]


def test_latest_transaction_date_ignores_unreadable_dates(ledger):
    assert latest_transaction_date(ledger) == "2024-03-06"
    assert latest_transaction_date([]) is None


def test_window_start_steps_back_whole_months():
    assert window_start("2024-03-06", 1) == date(2024, 3, 1)
    assert window_start("2024-03-06", 6) == date(2023, 10, 1)
    assert window_start("someday", 3) is None


@pytest.mark.parametrize(
    ("months", "expected"),
    [(1, Decimal(900)), (3, Decimal(600)), (6, Decimal(300))],
)
def test_proven_average_divides_window_total_by_months(ledger, months, expected):
    assert proven_average(ledger, "Groceries", months, "2024-03-06") == expected


def test_proven_average_edge_cases(ledger):
    assert proven_average(ledger, "Groceries", 3, None) == 0
    assert proven_average(ledger, "Fuel", 3, "2024-03-06") == 0
    with pytest.raises(ValueError):
        proven_average(ledger, "Groceries", 0, "2024-03-06")


@pytest.mark.parametrize(
    ("proven", "claimed", "label"),
    [
        ("949", "1000", "Shortfall"),
        ("950", "1000", "Verified"),
        ("1050", "1000", "Verified"),
        ("1051", "1000", "Over"),
        ("500", None, "No Claim"),
        ("500", "0", "No Claim"),
    ],
)
def test_classify_proof_breakpoints(proven, claimed, label):
    result = classify_proof(Decimal(proven), Decimal(claimed) if claimed is not None else None)

    assert result.label == label
    if label == "No Claim":
        assert result.ratio == 0


def test_unproven_claims_sorted_by_shortfall(ledger):
    claims = [
        make_claim("Groceries", 1000),
        make_claim("Rent", 12000),
        make_claim("Medical", 500),
        make_claim("Rent", 3000),
    ]

    unproven = unproven_claims(claims, ledger, proof_period="3M")

    assert [(u.category, u.shortfall) for u in unproven] == [
        ("Rent", Decimal(9000)),
        ("Medical", Decimal(500)),
        ("Groceries", Decimal(400)),
    ]
    assert unproven[0].proven == Decimal(3000)


def test_verification_report_rows(ledger):
    claim = make_claim("Groceries", 1000)

    (row,) = verification_report([claim], ledger, months=3)

    assert row.claim_id == claim.id
    assert row.proven == Decimal(600)
    assert row.ratio == Decimal("0.6")
    assert row.label == "Shortfall"


def test_filter_by_period(ledger):
    one_month = filter_by_period(ledger, "1M", "2024-03-06")
    unknown = filter_by_period(ledger, "2W", "2024-03-06")
    three_months = filter_by_period(ledger, "3M", "2024-03-06")

    assert {t.date for t in one_month} == {"2024-03-01", "2024-03-05", "2024-03-06"}
    assert unknown == one_month
    assert len(three_months) == 5
    assert filter_by_period(ledger, "1M", None) == ledger


def test_cycle_period_calendar_month():
    period = cycle_period(2024, 3, "last")

    assert (period.start, period.end, period.label) == (
        date(2024, 3, 1),
        date(2024, 3, 31),
        "Mar 2024",
    )


def test_cycle_period_clamps_custom_day():
    feb = cycle_period(2024, 2, 31)
    mar = cycle_period(2024, 3, 31)
    jan = cycle_period(2024, 1, 25)

    assert (feb.start, feb.end) == (date(2024, 2, 1), date(2024, 2, 29))
    assert feb.label == "End 29 Feb 2024"
    assert (mar.start, mar.end) == (date(2024, 3, 1), date(2024, 3, 31))
    assert (jan.start, jan.end) == (date(2023, 12, 26), date(2024, 1, 25))


def test_missing_statements_calendar_cycles():
    txs = [make_tx(d, -10) for d in ("2024-01-10", "2024-02-10", "2024-04-10", "2024-05-10")]

    (report,) = missing_statements(txs, now=date(2024, 6, 15))

    assert report.account == "Cheque 123"
    assert report.cycle_day == "last"
    assert report.missing == ["Mar 2024"]


def test_missing_statements_custom_cycle_skips_unfinished_cycle():
    txs = [
        make_tx("2023-12-01", -10, cycle_day="last"),
        make_tx("2024-05-10", -10, cycle_day=25),
    ]

    (report,) = missing_statements(txs, now=date(2024, 6, 15))

    assert report.cycle_day == 25
    assert report.missing == [
        "End 25 Jan 2024",
        "End 25 Feb 2024",
        "End 25 Mar 2024",
        "End 25 Apr 2024",
    ]


def test_missing_statements_fully_covered_account_is_not_reported():
    txs = [make_tx(f"2024-{m:02d}-05", -10) for m in range(1, 7)]

    assert missing_statements(txs, now=date(2024, 6, 30)) == []


def test_unmatched_transfers_need_opposite_twin_within_three_days():
    out_leg = make_tx("2024-03-03", -1000, cat="Inter-Account Transfer")
    in_leg = make_tx("2024-03-05", 1000, cat="Inter-Account Transfer", acc="Savings 9")
    late = make_tx("2024-03-10", -200, cat="Inter-Account Transfer")
    same_sign = make_tx("2024-03-11", -200, cat="Inter-Account Transfer")

    assert unmatched_transfers([out_leg, in_leg, late, same_sign]) == [late, same_sign]


def test_month_gaps_between_first_and_last_month():
    txs = [
        make_tx("2024-01-20", -1),
        make_tx("2024-04-02", -1),
        make_tx("2024-03-02", -1, acc="Savings 9"),
    ]

    assert month_gaps(txs) == {"Cheque 123": ["2024-02", "2024-03"]}


def test_compute_alerts_order_and_messages():
    txs = [
        make_tx("2024-03-01", -300, cat="Groceries", status="confirmed"),
        make_tx("2024-03-02", -50, flagged=True),
        make_tx("2024-03-03", -1000, cat="Inter-Account Transfer"),
        make_tx("2024-03-05", 1000, cat="Inter-Account Transfer", acc="Savings 9"),
        make_tx("2024-03-10", -200, cat="Inter-Account Transfer"),
        make_tx("2024-01-20", -80, cat="Miscellaneous"),
    ]
    claims = [make_claim("Groceries", 1000)]

    alerts = compute_alerts(txs, claims)

    assert [a.id for a in alerts] == [
        "unproven",
        "uncategorized",
        "flagged",
        "unmatched-transfers",
        "miscellaneous",
        "missing-Cheque 123",
        "confirmation-status",
    ]
    by_id = {a.id: a for a in alerts}
    assert by_id["unproven"].msg == "1 expense category not fully proven"
    assert by_id["uncategorized"].msg == "1 transaction needs to be categorized"
    assert by_id["missing-Cheque 123"].msg == "1 month missing: 2024-02"
    assert by_id["confirmation-status"].msg == "1 of 6 transactions confirmed (17%)"
    assert by_id["confirmation-status"].type == "info"
    assert by_id["confirmation-status"].value == 17


def test_compute_alerts_empty_inputs():
    assert compute_alerts([], []) == []
