"""Callsign operator resolution — leading ICAO airline designator to operator.

Airline callsigns begin with a fixed-width (3 letter) ICAO designator:
"DLH4AB" -> DLH -> Lufthansa (DE). Lookup is exact on that code; there is
no fuzzy or prefix matching. A callsign shorter than the code width is
looked up whole.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Iterator

DEFAULT_CODE_LENGTH = 3


@dataclass(frozen=True)
class Operator:
    name: str
    country: str  # ISO 3166-1 alpha-2


@dataclass(frozen=True)
class CallsignMatch:
    country_code: str
    operator: Operator
    code: str


class OperatorTable(Mapping):
    """Immutable code -> Operator mapping with a fixed code width."""

    def __init__(self, operators: Mapping[str, Operator] | None = None,
                 code_length: int = DEFAULT_CODE_LENGTH):
        if code_length < 1:
            raise ValueError(f"code_length must be positive, got {code_length}")
        self.code_length = code_length
        self._table: dict[str, Operator] = {}
        for code, op in (operators or {}).items():
            key = code.strip().upper()
            if key in self._table:
                raise ValueError(f"Duplicate operator code: {key!r}")
            self._table[key] = Operator(op.name, op.country.strip().upper())

    def __getitem__(self, code: str) -> Operator:
        return self._table[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"OperatorTable({len(self._table)} operators, code_length={self.code_length})"


def operator_code(callsign: str, code_length: int = DEFAULT_CODE_LENGTH) -> str:
    """Normalized leading code of a callsign ('  dlh4ab ' -> 'DLH')."""
    return callsign.strip().upper()[:code_length]


def resolve_callsign(table: OperatorTable, callsign: str | None) -> CallsignMatch | None:
    """Return the operator and country for a callsign's leading code, or None."""
    if not callsign:
        return None
    code = operator_code(callsign, table.code_length)
    if not code:
        return None
    op = table.get(code)
    if op is None:
        return None
    return CallsignMatch(country_code=op.country, operator=op, code=code)


# Common ICAO airline designators (North America + Europe)
DEFAULT_OPERATORS: dict[str, Operator] = {
    "AAL": Operator("American Airlines", "US"),
    "DAL": Operator("Delta Air Lines", "US"),
    "UAL": Operator("United Airlines", "US"),
    "SWA": Operator("Southwest Airlines", "US"),
    "JBU": Operator("JetBlue Airways", "US"),
    "NKS": Operator("Spirit Airlines", "US"),
    "FFT": Operator("Frontier Airlines", "US"),
    "ASA": Operator("Alaska Airlines", "US"),
    "SKW": Operator("SkyWest Airlines", "US"),
    "UPS": Operator("UPS", "US"),
    "FDX": Operator("FedEx", "US"),
    "GTI": Operator("Atlas Air", "US"),
    "ACA": Operator("Air Canada", "CA"),
    "WJA": Operator("WestJet", "CA"),
    "BAW": Operator("British Airways", "GB"),
    "EZY": Operator("easyJet", "GB"),
    "WUK": Operator("Wizz Air UK", "GB"),
    "DLH": Operator("Deutsche Lufthansa", "DE"),
    "LHX": Operator("Lufthansa City", "DE"),
    "AFR": Operator("Air France", "FR"),
    "KLM": Operator("KLM Royal Dutch Airlines", "NL"),
    "RYR": Operator("Ryanair", "IE"),
    "EIN": Operator("Aer Lingus", "IE"),
    "CTN": Operator("Croatia Airlines", "HR"),
    "NOZ": Operator("Norwegian Air", "NO"),
    "AUA": Operator("Austrian Airlines", "AT"),
    "SWR": Operator("Swiss International Air Lines", "CH"),
    "BTI": Operator("airBaltic", "LV"),
    "FIN": Operator("Finnair", "FI"),
    "FHY": Operator("Freebird Airlines", "TR"),
    "AHY": Operator("Azerbaijan Airlines", "AZ"),
    "IBS": Operator("Iberia Express", "ES"),
    "ITY": Operator("ITA Airways", "IT"),
}

DEFAULT_OPERATOR_TABLE = OperatorTable(DEFAULT_OPERATORS)
