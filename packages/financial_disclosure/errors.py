"""Error taxonomy for extraction and case-file handling.

Structural failures (a file that cannot be processed at all) are raised as
exceptions. Row- and line-level problems are never raised: parsers skip the
offending input and continue. An extraction that succeeds structurally but
yields nothing is reported as a warning ``FileIssue`` by :mod:`.ingest`, not
raised.
"""

from __future__ import annotations

import csv


class DisclosureError(Exception):
    """Base class for errors raised by ``financial_disclosure``."""


class MissingColumnError(csv.Error, DisclosureError):
    """A required semantic column (date) is absent from a CSV header."""

    def __init__(self, column: str, *, file_name: str | None = None, headers=()) -> None:
        self.column = column
        self.file_name = file_name
        self.headers = tuple(headers)
        where = f" in {file_name}" if file_name else ""
        found = ", ".join(self.headers) if self.headers else "none"
        super().__init__(f"Could not find {column} column{where} (headers: {found})")


class UnsupportedFormatError(ValueError, DisclosureError):
    """The file extension is not handled by the selected processor."""

    def __init__(self, extension: str, *, supported: tuple[str, ...] = ()) -> None:
        self.extension = extension
        self.supported = supported
        msg = f"Unsupported file format: {extension or '<none>'}"
        if supported:
            msg += ". Please use " + " or ".join(s.upper() for s in supported) + "."
        super().__init__(msg)


class CaseFileError(ValueError, DisclosureError):
    """A case file failed schema validation on load."""


__all__ = [
    "DisclosureError",
    "MissingColumnError",
    "UnsupportedFormatError",
    "CaseFileError",
]
