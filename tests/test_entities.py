import pytest

from financial_disclosure.entities import (
    account_matches,
    ensure_transaction_entities,
    filter_by_entity,
    resolve_entity,
    transaction_matches_entity,
)
from financial_disclosure.models import BANK_STATEMENT, FileRecord

from tests.helpers.records import make_tx

ACCOUNTS = {
    "BUSINESS": "FNB Business 62000001",
    "MYMOBIZ": "MyMoBiz 1234",
    "PERSONAL": "Cheque 9876",
    "TRUST": "Family Trust 555",
}


def test_explicit_tag_wins_and_is_normalized():
    tx = make_tx("2024-03-01", -100, acc="Cheque 9876", entity=" business ")

    assert resolve_entity(tx, "PERSONAL", ACCOUNTS) == "BUSINESS"


def test_trust_accounts_count_towards_personal():
    tx = make_tx("2024-03-01", -100, acc="Family Trust 555")

    assert resolve_entity(tx, "PERSONAL", ACCOUNTS) == "PERSONAL"
    assert resolve_entity(tx, "TRUST", ACCOUNTS) == "TRUST"


def test_digits_are_decisive_when_both_sides_have_them():
    savings = make_tx("2024-03-01", -100, acc="Family Savings 777")
    no_digits = make_tx("2024-03-01", -100, acc="Family Savings")

    assert resolve_entity(savings, "TRUST", ACCOUNTS) is None
    assert resolve_entity(no_digits, "TRUST", ACCOUNTS) == "TRUST"


@pytest.mark.parametrize(
    ("account", "expected"),
    [
        ("My Business Acc", "BUSINESS"),
        ("MyMoBiz 1234", "BUSINESS"),
        ("Family Trust 555", "TRUST"),
        ("Savings", None),
    ],
)
def test_without_configured_accounts_keywords_are_searched(account, expected):
    assert resolve_entity(make_tx("2024-03-01", -100, acc=account)) == expected


def test_declared_entity_uses_keywords_without_configured_accounts():
    tx = make_tx("2024-03-01", -100, acc="MyMoBiz 1234")

    assert resolve_entity(tx, "BUSINESS") == "BUSINESS"
    assert resolve_entity(tx, "PERSONAL") is None
    assert filter_by_entity([tx], "BUSINESS") == [tx]


def test_keyword_fallback_when_group_has_no_labels():
    tx = make_tx("2024-03-01", -100, acc="Credit Card 4455")

    assert resolve_entity(tx, accounts={"PERSONAL": "Cheque 9876"}) == "CREDIT"


def test_file_records_resolve_from_their_name():
    record = FileRecord(id="f1", name="fnb_business_march.csv", type=BANK_STATEMENT)

    assert resolve_entity(record) == "BUSINESS"


@pytest.mark.parametrize(
    ("tag", "wanted", "expected"),
    [
        ("MYMOBIZ", "BUSINESS", True),
        ("BUSINESS", "business", True),
        ("TRUST", "PERSONAL", False),
        ("PERSONAL", "ALL", True),
        ("CREDIT", None, True),
    ],
)
def test_tagged_transactions_use_tag_groups(tag, wanted, expected):
    tx = make_tx("2024-03-01", -100, acc="Family Trust 555", entity=tag)

    assert transaction_matches_entity(tx, wanted, ACCOUNTS) is expected


def test_untagged_transactions_match_account_group():
    mymobiz = make_tx("2024-03-01", -100, acc="MyMoBiz 1234")
    cheque = make_tx("2024-03-02", -200, acc="Cheque 9876")

    assert filter_by_entity([mymobiz, cheque], "BUSINESS", ACCOUNTS) == [mymobiz]
    assert filter_by_entity([mymobiz, cheque], "PERSONAL", ACCOUNTS) == [cheque]
    assert filter_by_entity([mymobiz, cheque], "ALL", ACCOUNTS) == [mymobiz, cheque]


@pytest.mark.parametrize(
    ("account", "labels", "expected"),
    [
        ("", ["Cheque 9876"], False),
        ("cheque 9876", ["  CHEQUE   9876 "], True),
        ("Cheque", ["Gold Cheque Account"], True),
        ("Acc 9876 Gold", ["Cheque 9876"], True),
        ("Savings", ["Cheque 9876"], False),
        ("Ex", ["Ex Acc"], True),
    ],
)
def test_account_matches(account, labels, expected):
    assert account_matches(account, labels) is expected


def test_ensure_transaction_entities_normalizes_and_backfills():
    tagged = make_tx("2024-03-01", -1, entity=" trust ")
    canonical = make_tx("2024-03-01", -1, entity="PERSONAL")
    from_file = make_tx("2024-03-01", -1, file_id="f1")
    orphan = make_tx("2024-03-01", -1, file_id="missing")
    files = [
        FileRecord(id="f1", name="a.csv", type=BANK_STATEMENT, entity="business"),
        FileRecord(id="f2", name="b.csv", type=BANK_STATEMENT),
    ]

    out = ensure_transaction_entities([tagged, canonical, from_file, orphan], files)

    assert [t.entity for t in out] == ["TRUST", "PERSONAL", "BUSINESS", None]
    assert out[1] is canonical
    assert out[3] is orphan
