"""Export range tables, gaps and planned allocations.

Formats:
- JSON: Slim hex records, the same shape load_range_table() reads back
- CSV:  One row per range for spreadsheet review

All exporters write to a file path when given one and always return the text.
"""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Iterable

from .gaps import Gap
from .ranges import AllocationRange, format_address


def _write(text: str, path: str | Path | None) -> str:
    if path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    return text


def export_json(ranges: Iterable[AllocationRange], path: str | Path | None = None) -> str:
    """Export ranges as a JSON array of {startHex, finishHex, isMilitary, countryISO2, significantBitmask}."""
    text = json.dumps([r.to_dict() for r in ranges], indent=2) + "\n"
    return _write(text, path)


def export_csv(ranges: Iterable[AllocationRange], path: str | Path | None = None) -> str:
    """Export ranges as CSV.

    Columns: start_hex, end_hex, start_dec, end_dec, size, country, is_military, bitmask
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "start_hex", "end_hex", "start_dec", "end_dec",
        "size", "country", "is_military", "bitmask",
    ])
    for r in ranges:
        writer.writerow([
            r.start_hex, r.end_hex, r.start, r.end,
            r.size, r.country_code, int(r.is_military),
            format_address(r.significant_bitmask),
        ])
    return _write(output.getvalue(), path)


def export_gaps_json(gaps: Iterable[Gap], path: str | Path | None = None) -> str:
    text = json.dumps([g.to_dict() for g in gaps], indent=2) + "\n"
    return _write(text, path)


EXPORTERS = {
    "json": export_json,
    "csv": export_csv,
}
