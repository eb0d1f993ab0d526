"""Runtime settings resolved from the environment.

The CLI loads a local ``.env`` (``python-dotenv``) before calling
:meth:`Settings.from_env`; library callers may construct :class:`Settings`
directly. Invalid values fall back to defaults rather than failing.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

CSV_MAX_ROWS = 100_000
DEFAULT_BATCH_WORKERS = 4
MAX_BATCH_WORKERS = 16


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        value = int(raw) if raw else default
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True, slots=True)
class Settings:
    csv_max_rows: int = CSV_MAX_ROWS
    batch_max_workers: int = DEFAULT_BATCH_WORKERS
    taxonomy_path: Path | None = None
    log_level: str | None = None

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``FD_*`` and ``FINANCIAL_DISCLOSURE_LOG_LEVEL``.

        ``FD_CSV_MAX_ROWS`` can only lower the row cap, never raise it.
        """

        tax = os.getenv("FD_TAXONOMY_PATH")
        return cls(
            csv_max_rows=min(_env_int("FD_CSV_MAX_ROWS", CSV_MAX_ROWS), CSV_MAX_ROWS),
            batch_max_workers=_env_int("FD_BATCH_MAX_WORKERS", DEFAULT_BATCH_WORKERS),
            taxonomy_path=Path(tax).expanduser() if tax and tax.strip() else None,
            log_level=os.getenv("FINANCIAL_DISCLOSURE_LOG_LEVEL") or None,
        )

    def workers_for(self, n_jobs: int) -> int:
        """Cap the configured worker count to the job count and a hard ceiling."""

        return max(1, min(self.batch_max_workers, n_jobs, MAX_BATCH_WORKERS))


__all__ = ["Settings", "CSV_MAX_ROWS"]
