"""Attribute transactions and files to entities (PERSONAL, BUSINESS, ...).

An explicit entity tag on a record always wins and is only normalized. When
the tag is missing the record's free-text account label is compared with the
account labels configured for the entity's group (``accounts`` maps group
keys such as ``"BUSINESS"`` or ``"MYMOBIZ"`` to the label printed on
statements). Without any configured label a small keyword list is used.

Group membership is not one-to-one: the PERSONAL account group also takes in
TRUST-labelled accounts. That rule lives only in :data:`ENTITY_ACCOUNT_GROUPS`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from typing import Any, TypeAlias

from .models import ENTITIES, FileRecord, Transaction

Accounts: TypeAlias = Mapping[str, str | None]

ALL = "ALL"

# Which configured account keys count as belonging to an entity.
ENTITY_ACCOUNT_GROUPS: Mapping[str, tuple[str, ...]] = {
    "PERSONAL": ("PERSONAL", "TRUST"),
    "BUSINESS": ("BUSINESS", "MYMOBIZ"),
    "TRUST": ("TRUST",),
    "CREDIT": ("CREDIT",),
}

# Which explicit entity tags satisfy a filter for an entity.
ENTITY_TAG_GROUPS: Mapping[str, tuple[str, ...]] = {
    "PERSONAL": ("PERSONAL",),
    "BUSINESS": ("BUSINESS", "MYMOBIZ"),
    "TRUST": ("TRUST",),
    "CREDIT": ("CREDIT",),
}

FALLBACK_KEYWORDS: Mapping[str, tuple[str, ...]] = {
    "PERSONAL": ("personal",),
    "BUSINESS": ("business", "mymobiz"),
    "TRUST": ("trust",),
    "CREDIT": ("credit",),
    "SPOUSE": ("spouse",),
}

_DIGITS_RE = re.compile(r"\d+")


def normalize_entity(value: Any) -> str:
    """Upper-cased, trimmed entity tag; ``""`` for missing values."""

    if value is None:
        return ""
    return str(value).strip().upper()


def _normalize_account(value: str | None) -> str:
    return " ".join(str(value or "").lower().split())


def account_matches(account: str | None, labels: Sequence[str], entity: str | None = None) -> bool:
    """Heuristic match of a raw account label against configured labels.

    In order: the entity name inside the account, equality or containment
    either way, shared digit runs (decisive when both sides have digits),
    then a shared word longer than two characters.
    """

    acc = _normalize_account(account)
    if not acc:
        return False
    if entity and entity.lower() in acc:
        return True

    acc_digits = _DIGITS_RE.findall(acc)
    acc_words = acc.split()
    for raw_label in labels:
        label = _normalize_account(raw_label)
        if not label:
            continue
        if acc == label or label in acc or acc in label:
            return True
        label_digits = _DIGITS_RE.findall(label)
        if acc_digits and label_digits:
            if set(acc_digits) & set(label_digits):
                return True
            continue
        label_words = set(label.split())
        if any(len(w) > 2 and w in label_words for w in acc_words):
            return True
    return False


def _keyword_match(account: str | None, entity: str) -> bool:
    acc = str(account or "").lower()
    return any(k in acc for k in FALLBACK_KEYWORDS.get(entity, ()))


def matches_account_heuristics(
    account: str | None, entity: str, accounts: Accounts | None
) -> bool:
    entity = normalize_entity(entity)
    labels = [
        accounts[k] for k in ENTITY_ACCOUNT_GROUPS.get(entity, ()) if accounts and accounts.get(k)
    ]
    if not labels:
        return _keyword_match(account, entity)
    return account_matches(account, labels, entity)


def transaction_matches_entity(
    tx: Transaction, entity: str | None, accounts: Accounts | None = None
) -> bool:
    """Whether ``tx`` belongs under the ``entity`` filter (``ALL`` matches all)."""

    wanted = normalize_entity(entity)
    if not wanted or wanted == ALL:
        return True
    tagged = normalize_entity(tx.entity)
    if tagged:
        return tagged in ENTITY_TAG_GROUPS.get(wanted, (wanted,))
    return matches_account_heuristics(tx.acc, wanted, accounts)


def filter_by_entity(
    transactions: Iterable[Transaction], entity: str | None, accounts: Accounts | None = None
) -> list[Transaction]:
    return [t for t in transactions if transaction_matches_entity(t, entity, accounts)]


def resolve_entity(
    record: Transaction | FileRecord,
    declared_entity: str | None = None,
    accounts: Accounts | None = None,
) -> str | None:
    """Entity tag for a transaction or file record, or ``None`` if unresolved.

    An explicit tag on the record is returned normalized. Otherwise, with a
    ``declared_entity`` the record resolves to it only when its account label
    matches that entity's account group; without one the known entities are
    tried in order and the first match wins.
    """

    tagged = normalize_entity(record.entity)
    if tagged:
        return tagged
    account = record.acc if isinstance(record, Transaction) else record.name
    declared = normalize_entity(declared_entity)
    candidates = (declared,) if declared and declared != ALL else ENTITIES
    for entity in candidates:
        if matches_account_heuristics(account, entity, accounts):
            return entity
    return None


def ensure_transaction_entities(
    transactions: Iterable[Transaction], files: Iterable[FileRecord] = ()
) -> list[Transaction]:
    """Normalize explicit tags and backfill missing ones from the source file."""

    by_file = {
        f.id: normalize_entity(f.entity) for f in files if f.id and normalize_entity(f.entity)
    }
    out: list[Transaction] = []
    for tx in transactions:
        tagged = normalize_entity(tx.entity)
        if tagged:
            out.append(tx if tagged == tx.entity else replace(tx, entity=tagged))
        elif tx.file_id and tx.file_id in by_file:
            out.append(replace(tx, entity=by_file[tx.file_id]))
        else:
            out.append(tx)
    return out


__all__ = [
    "ALL",
    "Accounts",
    "ENTITY_ACCOUNT_GROUPS",
    "ENTITY_TAG_GROUPS",
    "FALLBACK_KEYWORDS",
    "normalize_entity",
    "account_matches",
    "matches_account_heuristics",
    "transaction_matches_entity",
    "filter_by_entity",
    "resolve_entity",
    "ensure_transaction_entities",
]
