"""Small builders for transactions and claims used across tests."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from financial_disclosure.models import Claim, Transaction


def make_tx(
    date: str,
    amount: str | int,
    *,
    cat: str = "Uncategorized",
    acc: str = "Cheque 123",
    desc: str = "POS purchase",
    **extra: Any,
) -> Transaction:
    return Transaction(
        date=date,
        desc=desc,
        clean=desc,
        amount=Decimal(str(amount)),
        acc=acc,
        cat=cat,
        **extra,
    )


def make_claim(category: str, claimed: str | int, **extra: Any) -> Claim:
    return Claim(category=category, claimed=Decimal(str(claimed)), **extra)
