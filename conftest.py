"""Pytest configuration.

Ensures local packages can be imported consistently during test collection.
"""

import sys
from pathlib import Path

import pytest


def _prepend_sys_path(path: Path) -> None:
    resolved = str(path.resolve())
    if resolved not in sys.path:
        sys.path.insert(0, resolved)


REPO_ROOT = Path(__file__).resolve().parent

# Allow importing `src.*` package explicitly.
_prepend_sys_path(REPO_ROOT)


@pytest.fixture(autouse=True)
def dataverse_env_vars(monkeypatch):
    """Keep a developer's local Dataverse settings out of the tests."""
    for name in (
        "DATAVERSE_URL",
        "DATAVERSE_ACCESS_TOKEN",
        "DATAVERSE_API_VERSION",
        "DATAVERSE_HTTP_TIMEOUT_SECONDS",
        "DATAVERSE_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
