"""Case file export and import (``.r43`` JSON documents).

A case file bundles everything extracted for one matter::

    {version, caseName, exportedAt, accounts, categories, files,
     transactions, claims, notes, charts, alerts}

Records are written with the camelCase keys used by the host application
(``fileId``, ``cycleDay``) and amounts as JSON numbers. Loading validates the
document with pydantic models and raises :class:`CaseFileError` on the first
structural problem; legacy status labels are normalized and transactions
without an entity inherit their source file's entity.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import UTC, date, datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    ValidationError,
    field_validator,
)

from .entities import ensure_transaction_entities
from .errors import CaseFileError
from .models import (
    UNCATEGORIZED,
    Claim,
    CycleDay,
    FileRecord,
    Transaction,
    amount_as_number,
    normalize_cycle_day,
    normalize_status,
    to_decimal,
)
from .taxonomy import CategoryTaxonomy, load_taxonomy

CASE_FILE_VERSION = "1.0"
DEFAULT_CASE_NAME = "New Case"
CASE_FILE_SUFFIX = ".r43"


# ---------------------------------------------------------------------------
# On-disk schema
# ---------------------------------------------------------------------------


def _required_text(v: str) -> str:
    if not v.strip():
        raise ValueError("must be non-empty")
    return v.strip()


class _FileEntry(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str = ""
    type: str = ""
    entity: str | None = None
    cycle_day: Any = Field(default="last", alias="cycleDay")

    @field_validator("cycle_day")
    @classmethod
    def _cycle_day(cls, v: Any) -> CycleDay:
        return normalize_cycle_day(v)


class _TransactionEntry(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    date: str
    amount: StrictInt | StrictFloat
    desc: str = ""
    clean: str | None = None
    acc: str = ""
    entity: str | None = None
    cat: str | None = UNCATEGORIZED
    subcat: str | None = None
    status: Any = "pending"
    file_id: str | None = Field(default=None, alias="fileId")
    flagged: bool = False
    cycle_day: Any = Field(default="last", alias="cycleDay")

    @field_validator("id", "date")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        return _required_text(v)

    @field_validator("status")
    @classmethod
    def _status(cls, v: Any) -> str:
        return normalize_status(v)

    @field_validator("cycle_day")
    @classmethod
    def _cycle_day(cls, v: Any) -> CycleDay:
        return normalize_cycle_day(v)


class _ClaimEntry(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    category: str
    claimed: StrictInt | StrictFloat
    desc: str = ""
    reference: str | None = None
    file_id: str | None = Field(default=None, alias="fileId")
    source: str = "imported"

    @field_validator("id", "category")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        return _required_text(v)

    @field_validator("claimed")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("claimed amount must be positive")
        return v


class _CaseFileModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    version: str = CASE_FILE_VERSION
    case_name: str | None = Field(default=None, alias="caseName")
    exported_at: str | None = Field(default=None, alias="exportedAt")
    accounts: dict[str, Any]
    categories: list[str] | None = None
    files: list[_FileEntry] | None = None
    transactions: list[_TransactionEntry]
    claims: list[_ClaimEntry]
    notes: dict[str, Any] | None = None
    charts: list[Any] | None = None
    alerts: list[Any] | None = None


# ---------------------------------------------------------------------------
# Loaded representation
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CaseFile:
    case_name: str
    accounts: dict[str, Any]
    categories: list[str]
    files: list[FileRecord]
    transactions: list[Transaction]
    claims: list[Claim]
    notes: dict[str, Any] = field(default_factory=dict)
    charts: list[Any] = field(default_factory=list)
    alerts: list[Any] = field(default_factory=list)
    version: str = CASE_FILE_VERSION
    exported_at: str | None = None


def _transaction_from_entry(e: _TransactionEntry) -> Transaction:
    amount = to_decimal(e.amount)
    if amount is None:
        raise CaseFileError(f"Invalid case file: transaction {e.id} has a non-finite amount")
    desc = e.desc or ""
    return Transaction(
        id=e.id,
        date=e.date,
        desc=desc,
        clean=e.clean if e.clean is not None else " ".join(desc.split()),
        amount=amount,
        acc=e.acc or "",
        entity=e.entity or None,
        cat=e.cat or UNCATEGORIZED,
        subcat=e.subcat,
        status=e.status,
        file_id=e.file_id,
        flagged=e.flagged,
        cycle_day=e.cycle_day,
    )


def _claim_from_entry(e: _ClaimEntry) -> Claim:
    try:
        return Claim(
            id=e.id,
            category=e.category,
            claimed=e.claimed,
            desc=e.desc or "",
            reference=e.reference,
            file_id=e.file_id,
            source=e.source if e.source in ("manual", "imported") else "imported",
        )
    except ValueError as exc:
        raise CaseFileError(f"Invalid case file: claim {e.id}: {exc}") from exc


def load_case_file(
    text: str | bytes, *, taxonomy: CategoryTaxonomy | None = None
) -> CaseFile:
    """Parse and validate a case file document."""

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CaseFileError(f"Invalid case file: not valid JSON ({exc.msg})") from exc
    if not isinstance(raw, dict):
        raise CaseFileError("Invalid case file: not a valid JSON object")
    try:
        model = _CaseFileModel.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first["loc"])
        raise CaseFileError(f"Invalid case file: {where}: {first['msg']}") from exc

    files = [
        FileRecord(id=f.id, name=f.name, type=f.type, entity=f.entity, cycle_day=f.cycle_day)
        for f in model.files or []
    ]
    transactions = ensure_transaction_entities(
        [_transaction_from_entry(t) for t in model.transactions], files
    )
    categories = list(model.categories or [])
    if not categories:
        categories = list((taxonomy or load_taxonomy()).categories)

    return CaseFile(
        case_name=model.case_name or DEFAULT_CASE_NAME,
        accounts=model.accounts,
        categories=categories,
        files=files,
        transactions=transactions,
        claims=[_claim_from_entry(c) for c in model.claims],
        notes=model.notes or {},
        charts=list(model.charts or []),
        alerts=list(model.alerts or []),
        version=model.version,
        exported_at=model.exported_at,
    )


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def transaction_to_dict(tx: Transaction) -> dict[str, Any]:
    return {
        "id": tx.id,
        "date": tx.date,
        "desc": tx.desc,
        "clean": tx.clean,
        "amount": amount_as_number(tx.amount),
        "acc": tx.acc,
        "entity": tx.entity,
        "cat": tx.cat,
        "subcat": tx.subcat,
        "status": tx.status,
        "fileId": tx.file_id,
        "flagged": tx.flagged,
        "cycleDay": tx.cycle_day,
        "type": tx.type,
    }


def claim_to_dict(claim: Claim) -> dict[str, Any]:
    return {
        "id": claim.id,
        "category": claim.category,
        "desc": claim.desc,
        "claimed": amount_as_number(claim.claimed),
        "reference": claim.reference,
        "fileId": claim.file_id,
        "source": claim.source,
    }


def file_to_dict(record: FileRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "name": record.name,
        "type": record.type,
        "entity": record.entity,
        "cycleDay": record.cycle_day,
    }


def _jsonable(item: Any) -> Any:
    if is_dataclass(item) and not isinstance(item, type):
        return asdict(item)
    return item


def build_case_file(
    *,
    transactions: Iterable[Transaction] = (),
    claims: Iterable[Claim] = (),
    files: Iterable[FileRecord] = (),
    accounts: Mapping[str, Any] | None = None,
    categories: Sequence[str] | None = None,
    case_name: str | None = None,
    notes: Mapping[str, Any] | None = None,
    charts: Iterable[Any] = (),
    alerts: Iterable[Any] = (),
    exported_at: datetime | None = None,
    taxonomy: CategoryTaxonomy | None = None,
) -> dict[str, Any]:
    """Assemble a JSON-ready case file document."""

    if not categories:
        categories = (taxonomy or load_taxonomy()).categories
    stamp = (exported_at or datetime.now(UTC)).isoformat()
    return {
        "version": CASE_FILE_VERSION,
        "caseName": case_name or DEFAULT_CASE_NAME,
        "exportedAt": stamp,
        "accounts": dict(accounts or {}),
        "categories": list(categories),
        "files": [file_to_dict(f) for f in files],
        "transactions": [transaction_to_dict(t) for t in transactions],
        "claims": [claim_to_dict(c) for c in claims],
        "notes": dict(notes or {}),
        "charts": [_jsonable(c) for c in charts],
        "alerts": [_jsonable(a) for a in alerts],
    }


def dump_case_file(document: Mapping[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


def case_file_name(case_name: str | None, today: date | None = None) -> str:
    """``<Safe_Name>_<YYYY-MM-DD>.r43`` for a case name."""

    safe = re.sub(r"\s+", "_", (case_name or DEFAULT_CASE_NAME).strip())
    safe = re.sub(r"[^A-Za-z0-9_]", "", safe) or DEFAULT_CASE_NAME.replace(" ", "_")
    stamp = (today or date.today()).isoformat()
    return f"{safe}_{stamp}{CASE_FILE_SUFFIX}"


__all__ = [
    "CASE_FILE_VERSION",
    "CaseFile",
    "build_case_file",
    "dump_case_file",
    "load_case_file",
    "case_file_name",
    "transaction_to_dict",
    "claim_to_dict",
    "file_to_dict",
]
