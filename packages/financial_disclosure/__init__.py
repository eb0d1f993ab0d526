"""Public interface for the ``financial_disclosure`` package.

Extraction of transactions from bank statements and of claimed monthly
expenses from financial affidavits, category mapping, entity attribution,
and proof analysis of claims against bank data. This module only re-exports
the stable import surface.
"""

from .analysis import (
    classify_proof,
    compute_alerts,
    filter_by_period,
    latest_transaction_date,
    missing_statements,
    proven_average,
    unproven_claims,
    verification_report,
)
from .case_file import build_case_file, case_file_name, load_case_file
from .claims import extract_claims, import_claims, validate_claims
from .columns import find_column, read_csv_rows
from .entities import (
    ensure_transaction_entities,
    filter_by_entity,
    resolve_entity,
    transaction_matches_entity,
)
from .errors import CaseFileError, DisclosureError, MissingColumnError, UnsupportedFormatError
from .ingest import (
    FileIssue,
    FileJob,
    FileOutcome,
    process_affidavit,
    process_bank_statement,
    process_batch,
)
from .mapper import CategoryMapper, map_category
from .models import Claim, FileRecord, Transaction
from .parsers import (
    StatementParser,
    parse_fnb,
    parse_generic,
    parse_standard_bank,
    parse_statement_text,
)
from .settings import Settings
from .taxonomy import CategoryTaxonomy, load_taxonomy

__all__ = [
    # Extraction
    "read_csv_rows",
    "find_column",
    "StatementParser",
    "parse_standard_bank",
    "parse_fnb",
    "parse_generic",
    "parse_statement_text",
    "extract_claims",
    "import_claims",
    "validate_claims",
    # Categories and entities
    "CategoryTaxonomy",
    "load_taxonomy",
    "CategoryMapper",
    "map_category",
    "resolve_entity",
    "transaction_matches_entity",
    "filter_by_entity",
    "ensure_transaction_entities",
    # Analysis
    "latest_transaction_date",
    "filter_by_period",
    "proven_average",
    "classify_proof",
    "unproven_claims",
    "verification_report",
    "missing_statements",
    "compute_alerts",
    # Case files and batches
    "build_case_file",
    "load_case_file",
    "case_file_name",
    "FileIssue",
    "FileJob",
    "FileOutcome",
    "process_bank_statement",
    "process_affidavit",
    "process_batch",
    # Models / config / errors
    "Transaction",
    "Claim",
    "FileRecord",
    "Settings",
    "DisclosureError",
    "MissingColumnError",
    "UnsupportedFormatError",
    "CaseFileError",
]
