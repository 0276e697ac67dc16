"""Shared test fixtures for icao-consensus.

Provides:
- Small range, prefix and operator tables with known answers
- A Tables bundle of all three
- Isolated config directory (never touches ~/.icao-consensus)
"""

import pytest

from src.operators import Operator, OperatorTable
from src.ranges import AllocationRange, RangeTable
from src.registration import PrefixTable
from src.tables import Tables


@pytest.fixture
def range_table():
    """IT block containing 0x464A91, FI and a US military block."""
    return RangeTable([
        AllocationRange(0x440000, 0x47FFFF, "IT"),
        AllocationRange(0x480000, 0x487FFF, "FI"),
        AllocationRange(0xA00000, 0xADF7C7, "US"),
        AllocationRange(0xADF7C8, 0xAFFFFF, "US", is_military=True),
    ])


@pytest.fixture
def prefix_table():
    return PrefixTable({
        "O": "X",
        "OH": "FI",
        "I": "IT",
        "N": "US",
        "HB": "CH",
    })


@pytest.fixture
def operator_table():
    return OperatorTable({
        "FIN": Operator("Finnair", "FI"),
        "ITY": Operator("ITA Airways", "IT"),
        "AAL": Operator("American Airlines", "US"),
        "SWR": Operator("Swiss", "CH"),
    })


@pytest.fixture
def tables(range_table, prefix_table, operator_table):
    return Tables(range_table, prefix_table, operator_table)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config at an empty temp dir so defaults apply."""
    cfg_dir = tmp_path / "config"
    monkeypatch.setattr("src.config.CONFIG_DIR", cfg_dir)
    monkeypatch.setattr("src.config.CONFIG_FILE", cfg_dir / "config.yaml")
    return cfg_dir
