"""SQLite mismatch log — WAL mode, one append-only table.

Schema:
- mismatches: One row per reported mismatch. Address, registration, callsign,
              the country each source resolved to, and the report timestamp.

The engine only builds MismatchReport records; this store is what the CLI and
web API append them to. Rows are never updated.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from .consensus import MismatchReport

SCHEMA = """
CREATE TABLE IF NOT EXISTS mismatches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    address TEXT NOT NULL,
    registration TEXT,
    callsign TEXT,
    allocation_country TEXT,
    registration_country TEXT,
    operator_country TEXT,
    timestamp TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_mismatches_address ON mismatches(address);
CREATE INDEX IF NOT EXISTS idx_mismatches_timestamp ON mismatches(timestamp);
"""


class MismatchLog:
    """SQLite store for mismatch reports."""

    def __init__(self, path: str | Path = ":memory:"):
        self.path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(SCHEMA)
        return self._conn

    def close(self):
        if self._conn:
            self._conn.commit()
            self._conn.close()
            self._conn = None

    def append(self, report: MismatchReport) -> int:
        """Append a report. Returns its row id."""
        cur = self.conn.execute(
            """INSERT INTO mismatches
               (address, registration, callsign, allocation_country,
                registration_country, operator_country, timestamp)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (report.address, report.registration, report.callsign,
             report.allocation_country, report.registration_country,
             report.operator_country, report.timestamp),
        )
        self.conn.commit()
        return cur.lastrowid

    def recent(self, limit: int = 50, address: str | None = None) -> list[dict]:
        """Most recent reports first, optionally for one address."""
        if address:
            rows = self.conn.execute(
                "SELECT * FROM mismatches WHERE address = ? ORDER BY id DESC LIMIT ?",
                (address.upper(), limit),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM mismatches ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
        return [dict(r) for r in rows]

    def count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM mismatches").fetchone()[0]

    def country_pairs(self) -> list[dict]:
        """How often each allocation/registration country pair disagrees."""
        rows = self.conn.execute("""
            SELECT allocation_country, registration_country, COUNT(*) AS n
            FROM mismatches
            GROUP BY allocation_country, registration_country
            ORDER BY n DESC
        """).fetchall()
        return [dict(r) for r in rows]
