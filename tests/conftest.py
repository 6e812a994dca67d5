"""Shared fixtures: a fresh on-disk catalog per test."""

from pathlib import Path
from typing import Generator

import pytest

from darkroom import Catalog


@pytest.fixture
def catalog_path(tmp_path: Path) -> Path:
    return tmp_path / "library.catalog"


@pytest.fixture
def catalog(catalog_path: Path) -> Generator[Catalog, None, None]:
    """Open a new catalog in the test's temporary directory."""
    cat = Catalog.open(catalog_path)
    yield cat
    cat.close()
