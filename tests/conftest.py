"""
Pytest configuration and fixtures for the cellgeo test suite.

This module provides the markers, environment isolation and the on-disk
GEO-style datasets shared by the unit tests.
"""

import logging
import warnings
from pathlib import Path
from typing import Dict, Generator

import pytest

from cellgeo.config.settings import get_settings
from cellgeo.services.geo.constants import FileRole
from cellgeo.services.geo.format_detection import SampleDescriptor

from tests.mock_data import (
    SMALL_DATASET_CONFIG,
    TINY_BARCODES,
    TINY_COUNTS,
    TINY_GENES,
    generate_counts,
    write_10x_triplet,
    write_count_table,
)

# Suppress warnings during testing
logging.getLogger("scanpy").setLevel(logging.ERROR)
logging.getLogger("anndata").setLevel(logging.ERROR)

TEST_VERSION = "9.9.9-test"


# ==============================================================================
# Pytest Configuration Hooks
# ==============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# ==============================================================================
# Core Infrastructure Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch) -> Generator[Path, None, None]:
    """Point every setting at a per-test directory and reset the settings cache."""
    cache_dir = tmp_path / "cache"
    monkeypatch.setenv("CELLGEO_CACHE_DIR", str(cache_dir))
    monkeypatch.setenv("CELLGEO_LOG_LEVEL", "WARNING")
    for name in (
        "CELLGEO_STAGING_DIR",
        "CELLGEO_MIN_CELLS",
        "CELLGEO_MIN_FEATURES",
        "CELLGEO_DOWNLOAD_TIMEOUT",
        "CELLGEO_MAX_RETRIES",
    ):
        # blank means "use the default"; setenv also records the var for undo
        monkeypatch.setenv(name, "")
    # .env files are looked up from the working directory
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield cache_dir
    get_settings.cache_clear()


@pytest.fixture
def tool_version() -> str:
    return TEST_VERSION


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    return tmp_path / "staging"


# ==============================================================================
# Dataset Fixtures
# ==============================================================================


@pytest.fixture
def tiny_triplet(tmp_path: Path) -> Dict[str, Path]:
    """4 genes x 3 cells 10X trio, all files gzipped."""
    return write_10x_triplet(
        tmp_path / "tiny",
        counts=TINY_COUNTS,
        gene_ids=TINY_GENES,
        barcodes=TINY_BARCODES,
        compress=True,
    )


@pytest.fixture
def small_triplet(tmp_path: Path) -> Dict[str, Path]:
    """50 genes x 20 cells 10X trio, all files gzipped."""
    counts = generate_counts(config=SMALL_DATASET_CONFIG)
    return write_10x_triplet(tmp_path / "small", counts=counts, compress=True)


@pytest.fixture
def tiny_count_table(tmp_path: Path) -> Path:
    return write_count_table(
        tmp_path / "tabular" / "GSE1_counts.csv.gz",
        counts=TINY_COUNTS,
        gene_ids=TINY_GENES,
        barcodes=TINY_BARCODES,
    )


def make_triplet_sample(files: Dict[str, Path], sample_id: str = "sample1") -> SampleDescriptor:
    """SampleDescriptor for the dict returned by write_10x_triplet()."""
    return SampleDescriptor(
        sample_id=sample_id,
        role_to_path={
            FileRole.MATRIX: files["matrix"],
            FileRole.BARCODES: files["barcodes"],
            FileRole.FEATURES: files["features"],
        },
    )


@pytest.fixture
def tiny_sample(tiny_triplet) -> SampleDescriptor:
    return make_triplet_sample(tiny_triplet)


@pytest.fixture
def no_ambiguity_warnings():
    """Fail the test if classification emits any warning."""
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        yield
