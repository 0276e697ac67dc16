"""Table loading — normalize loosely-typed JSON records into engine types.

Source range data comes in several shapes, often mixed within one file:

    {"startDec": 4587520, "finishDec": 4620287, "countryISO2": "IT", ...}
    {"startHex": "460000", "finishHex": "467FFF", "countryISO2": "FI", ...}
    {"start": "460000", "end": 4620287, "countryCode": "FI", ...}

Every bound is converted to an integer here, at the boundary. Nothing past
this module ever sees a string-encoded address.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import NamedTuple

from .errors import InvalidRangeError
from .icao import DEFAULT_RANGE_TABLE
from .operators import DEFAULT_OPERATOR_TABLE, Operator, OperatorTable
from .ranges import DEFAULT_BITMASK, AllocationRange, RangeTable, parse_address
from .registration import DEFAULT_PREFIX_TABLE, PrefixTable

logger = logging.getLogger(__name__)

# (decimal key, hex key, generic key) for each bound, checked in that order
_START_KEYS = ("startDec", "startHex", "start")
_END_KEYS = ("finishDec", "finishHex", "end")


def _bound(record: dict, keys: tuple[str, str, str], index: int):
    dec_key, hex_key, key = keys
    if dec_key in record:
        value = record[dec_key]
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRangeError(f"Record {index}: {dec_key} must be an integer, got {value!r}")
        return parse_address(value)
    if hex_key in record:
        value = record[hex_key]
        if not isinstance(value, str):
            raise InvalidRangeError(f"Record {index}: {hex_key} must be a hex string, got {value!r}")
        return parse_address(value)
    if key in record:
        return parse_address(record[key])
    raise InvalidRangeError(f"Record {index}: missing {dec_key}/{hex_key}/{key}")


def _bitmask(value, index: int) -> int:
    if value is None:
        return DEFAULT_BITMASK
    try:
        return parse_address(value)
    except InvalidRangeError as e:
        raise InvalidRangeError(f"Record {index}: bad significantBitmask: {e}") from None


def range_from_record(record: dict, index: int = 0) -> AllocationRange:
    """Build an AllocationRange from one raw table record.

    When both a decimal and a hex form of a bound are present they must agree;
    a disagreement is a corrupt record, not something to pick between.
    """
    if not isinstance(record, dict):
        raise InvalidRangeError(f"Record {index}: expected an object, got {type(record).__name__}")

    start = _bound(record, _START_KEYS, index)
    end = _bound(record, _END_KEYS, index)
    for dec_key, hex_key, value in (("startDec", "startHex", start), ("finishDec", "finishHex", end)):
        if dec_key in record and hex_key in record and parse_address(record[hex_key]) != value:
            raise InvalidRangeError(
                f"Record {index}: {dec_key}={record[dec_key]} disagrees with {hex_key}={record[hex_key]}"
            )

    country = record.get("countryISO2", record.get("countryCode"))
    if not isinstance(country, str) or not country.strip():
        raise InvalidRangeError(f"Record {index}: missing country code")

    is_military = record.get("isMilitary", False)
    if not isinstance(is_military, bool):
        raise InvalidRangeError(f"Record {index}: isMilitary must be true/false, got {is_military!r}")

    try:
        return AllocationRange(
            start=start,
            end=end,
            country_code=country.strip().upper(),
            is_military=is_military,
            significant_bitmask=_bitmask(record.get("significantBitmask"), index),
        )
    except InvalidRangeError as e:
        raise InvalidRangeError(f"Record {index}: {e}") from None


def _read_json(path: str | Path):
    text = Path(path).read_text(encoding="utf-8")
    return json.loads(text)


def load_ranges(path: str | Path) -> list[AllocationRange]:
    """Load raw range records without requiring them to be sorted or disjoint."""
    data = _read_json(path)
    if not isinstance(data, list):
        raise InvalidRangeError(f"{path}: expected a JSON array of range records")
    ranges = [range_from_record(rec, i) for i, rec in enumerate(data)]
    logger.debug("Loaded %d range records from %s", len(ranges), path)
    return ranges


def load_range_table(path: str | Path) -> RangeTable:
    """Load a merged table. Overlaps raise OverlappingRangeError."""
    return RangeTable(load_ranges(path))


def load_prefix_table(path: str | Path) -> PrefixTable:
    """Load prefix -> country from a JSON object or a list of [prefix, country] pairs.

    The pair form exists so that duplicate keys in hand-edited files reach
    PrefixTable and raise, instead of being collapsed by the JSON parser.
    """
    data = _read_json(path)
    if isinstance(data, dict):
        if not all(isinstance(v, str) for v in data.values()):
            raise ValueError(f"{path}: prefix countries must be strings")
        return PrefixTable(data)
    if isinstance(data, list):
        pairs = []
        for i, item in enumerate(data):
            if not (isinstance(item, list) and len(item) == 2
                    and all(isinstance(v, str) for v in item)):
                raise ValueError(f"{path}: entry {i} must be a [prefix, country] pair")
            pairs.append((item[0], item[1]))
        return PrefixTable(pairs)
    raise ValueError(f"{path}: expected a JSON object or list of pairs")


def load_operator_table(path: str | Path, code_length: int = 3) -> OperatorTable:
    """Load code -> {name, country} operator records."""
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object of operator records")
    operators = {}
    for code, rec in data.items():
        if not isinstance(rec, dict) or not isinstance(rec.get("country"), str) or not rec["country"]:
            raise ValueError(f"{path}: operator {code!r} needs a 'country'")
        operators[code] = Operator(name=rec.get("name") or "", country=rec["country"])
    return OperatorTable(operators, code_length=code_length)


class Tables(NamedTuple):
    """The three read-only tables the classification path needs."""
    ranges: RangeTable
    prefixes: PrefixTable
    operators: OperatorTable


def load_tables(ranges_path: str | Path | None = None,
                prefixes_path: str | Path | None = None,
                operators_path: str | Path | None = None) -> Tables:
    """Load each table from its path, or fall back to the built-in one."""
    return Tables(
        ranges=load_range_table(ranges_path) if ranges_path else DEFAULT_RANGE_TABLE,
        prefixes=load_prefix_table(prefixes_path) if prefixes_path else DEFAULT_PREFIX_TABLE,
        operators=load_operator_table(operators_path) if operators_path else DEFAULT_OPERATOR_TABLE,
    )
