"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest


# Ensure src is in path
_SRC_DIR = Path(__file__).resolve().parents[0].parent / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))


@pytest.fixture(autouse=True)
def restore_root_logging():
    """CLI tests call setup_logging(); keep its handlers out of other tests."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def vin_frames() -> list[str]:
    """ReadDataByIdentifier(VIN) positive response split into FF + 2 CF."""
    return [
        "10 14 62 F1 90 31 46 54",
        "21 46 57 31 45 54 35 44",
        "22 46 41 31 32 33 34 35",
    ]


@pytest.fixture
def config_factory(tmp_path: Path):
    """Write a YAML config file and return its path."""
    import yaml

    def _create(data: dict, name: str = "decoder.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _create
