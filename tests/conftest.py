"""Shared pytest fixtures for all tests."""

import logging
from pathlib import Path

import pytest


def write_csv(path: Path, text: str) -> Path:
    """Write a small CSV fixture, creating parent folders."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def make_csv():
    return write_csv


@pytest.fixture
def logger() -> logging.Logger:
    """A plain logger; handlers are left to pytest's caplog."""
    return logging.getLogger("batch_merge.tests")


@pytest.fixture
def two_batch_root(tmp_path: Path) -> Path:
    """Input root with B1 (3 valid rows) and B2 (2 rows, one bad well)."""
    root = tmp_path / "input"
    write_csv(
        root / "B1" / "merged.csv",
        "Well,Num.Peaks,Group\nA01,3,ctrl\nB02,2,ctrl\nH12,5,drug\n",
    )
    write_csv(
        root / "B2" / "merged.csv",
        "Well,Num.Peaks,Group\nC03,4,ctrl\nI01,6,drug\n",
    )
    return root
