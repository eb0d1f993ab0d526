"""Pytest configuration for test isolation.

The package reads its limits, worker count and taxonomy location from ``FD_*``
environment variables (optionally populated from a developer's ``.env``).
A value left in the shell would silently change parser caps or the taxonomy
under test, so every test starts from a clean environment.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make ``packages/`` (the library) and the repo root (``tests.helpers``) importable
# when the project is not installed.
_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [p for p in (str(_ROOT / "packages"), str(_ROOT)) if p not in sys.path]

_ENV_VARS = (
    "FD_CSV_MAX_ROWS",
    "FD_BATCH_MAX_WORKERS",
    "FD_TAXONOMY_PATH",
    "FINANCIAL_DISCLOSURE_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear package configuration and run each test from its own directory.

    Changing into ``tmp_path`` keeps the CLI's ``load_dotenv`` from picking up
    a ``.env`` in the repository checkout.
    """

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
