"""Registration prefix resolution — nationality mark to country.

Registrations start with a nationality mark of one or more characters
("N", "G", "OH", "HB", "VH"...). Marks overlap as strings ("O" is not a
mark but "OH", "OE", "OK"... are; "C" and "CS" both are), so matching always
takes the longest configured prefix:

    resolve_registration(table, "OH-LWA")  ->  FI via "OH"

Military serials that don't follow civil marks ("54+01", "MM62243") are
kept separately in MILITARY_REGISTRATION_PATTERNS. They are only used for
display, never by the resolver, so a civil prefix mismatch stays visible.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Iterable, Iterator

from .errors import DuplicatePrefixError


@dataclass(frozen=True)
class RegistrationMatch:
    country_code: str
    matched_prefix: str


@dataclass(frozen=True)
class MilitaryPattern:
    pattern: str  # Regex, matched against the normalized registration
    country_code: str
    description: str


MILITARY_REGISTRATION_PATTERNS: list[MilitaryPattern] = [
    MilitaryPattern(r"^54\+", "DE", "German military aircraft (54+ prefix)"),
    MilitaryPattern(r"^ZK-", "NZ", "New Zealand military aircraft"),
    MilitaryPattern(r"^MM\d+", "IT", "Italian military aircraft"),
]


def normalize(registration: str) -> str:
    return registration.strip().upper()


class PrefixTable(Mapping):
    """Immutable prefix -> country mapping with keys pre-sorted longest first.

    Accepts a mapping or an iterable of (prefix, country) pairs. Keys are
    normalized before the duplicate check, so "oh" and "OH" collide.
    """

    def __init__(self, entries: Mapping[str, str] | Iterable[tuple[str, str]] = ()):
        items = entries.items() if isinstance(entries, Mapping) else entries
        table: dict[str, str] = {}
        for prefix, country in items:
            key = normalize(prefix)
            if not key:
                raise ValueError("Registration prefix must not be empty")
            if key in table:
                raise DuplicatePrefixError(key)
            table[key] = country.strip().upper()
        self._table = table
        # Longest first; ties broken alphabetically so iteration is stable
        self._by_length = sorted(table, key=lambda p: (-len(p), p))

    def __getitem__(self, prefix: str) -> str:
        return self._table[prefix]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"PrefixTable({len(self._table)} prefixes)"

    @property
    def by_length(self) -> list[str]:
        """Prefixes ordered for longest-prefix matching."""
        return list(self._by_length)


def resolve_registration(table: PrefixTable, registration: str | None) -> RegistrationMatch | None:
    """Return the country of the longest prefix of `registration`, or None."""
    if not registration:
        return None
    reg = normalize(registration)
    if not reg:
        return None
    for prefix in table.by_length:
        if reg.startswith(prefix):
            return RegistrationMatch(country_code=table[prefix], matched_prefix=prefix)
    return None


def prefixes_for_country(table: PrefixTable, country_code: str) -> list[str]:
    code = country_code.strip().upper()
    return sorted(p for p, c in table.items() if c == code)


def military_registration(registration: str | None) -> MilitaryPattern | None:
    """Match a registration against the known military serial formats."""
    if not registration:
        return None
    reg = normalize(registration)
    for pattern in MILITARY_REGISTRATION_PATTERNS:
        if re.match(pattern.pattern, reg):
            return pattern
    return None


# ICAO nationality marks -> ISO 3166-1 alpha-2
DEFAULT_PREFIXES: dict[str, str] = {
    "N": "US",
    "C": "CA",
    "CF": "CA",
    "XA": "MX",
    "XB": "MX",
    "XC": "MX",
    "G": "GB",
    "EI": "IE",
    "F": "FR",
    "D": "DE",
    "I": "IT",
    "EC": "ES",
    "CS": "PT",
    "PH": "NL",
    "OO": "BE",
    "LX": "LU",
    "HB": "CH",
    "OE": "AT",
    "OK": "CZ",
    "OM": "SK",
    "SP": "PL",
    "HA": "HU",
    "YR": "RO",
    "LZ": "BG",
    "SX": "GR",
    "TC": "TR",
    "9A": "HR",
    "S5": "SI",
    "YU": "RS",
    "E7": "BA",
    "Z3": "MK",
    "ZA": "AL",
    "4O": "ME",
    "ER": "MD",
    "UR": "UA",
    "EW": "BY",
    "RA": "RU",
    "RF": "RU",
    "OH": "FI",
    "SE": "SE",
    "LN": "NO",
    "OY": "DK",
    "TF": "IS",
    "ES": "EE",
    "YL": "LV",
    "LY": "LT",
    "5B": "CY",
    "9H": "MT",
    "4X": "IL",
    "SU": "EG",
    "A6": "AE",
    "A7": "QA",
    "A9C": "BH",
    "HZ": "SA",
    "AP": "PK",
    "VT": "IN",
    "B": "CN",
    "B-H": "HK",
    "B-K": "HK",
    "B-L": "HK",
    "B-M": "MO",
    "JA": "JP",
    "HL": "KR",
    "HS": "TH",
    "9V": "SG",
    "9M": "MY",
    "PK": "ID",
    "RP": "PH",
    "VN": "VN",
    "VH": "AU",
    "ZK": "NZ",
    "ZS": "ZA",
    "5Y": "KE",
    "ET": "ET",
    "CN": "MA",
    "7T": "DZ",
    "PP": "BR",
    "PR": "BR",
    "PT": "BR",
    "PS": "BR",
    "LV": "AR",
    "CC": "CL",
    "HK": "CO",
    "OB": "PE",
}

DEFAULT_PREFIX_TABLE = PrefixTable(DEFAULT_PREFIXES)
