"""ICAO address resolution — allocation lookup and military detection.

Every aircraft has a unique 24-bit ICAO address assigned by country of registration.
Address ranges are allocated in blocks (e.g., 0xA00000-0xAFFFFF = United States).

Features:
- Binary-search lookup of the allocation containing an address
- Built-in allocation table (ISO 3166-1 alpha-2 codes, US military block flagged)
- Military detection from the allocation flag or callsign patterns (RCH*, DUKE*, REACH*, etc.)
"""

from __future__ import annotations

import logging
from bisect import bisect_right

from .ranges import AllocationRange, RangeTable, parse_address

logger = logging.getLogger(__name__)

# ICAO address allocation blocks: (start, end, country, military)
# Source: ICAO Annex 10 Vol III, Table 9-1 — major allocations only
_COUNTRY_BLOCKS: list[tuple[int, int, str, bool]] = [
    (0x008000, 0x00FFFF, "ZA", False),
    (0x010000, 0x017FFF, "EG", False),
    (0x018000, 0x01FFFF, "LY", False),
    (0x020000, 0x027FFF, "MA", False),
    (0x028000, 0x02FFFF, "TN", False),
    (0x040000, 0x040FFF, "ET", False),
    (0x04C000, 0x04CFFF, "KE", False),
    (0x064000, 0x064FFF, "NG", False),
    (0x0A0000, 0x0A7FFF, "DZ", False),
    (0x0A8000, 0x0A8FFF, "BS", False),
    (0x0AC000, 0x0ACFFF, "CO", False),
    (0x0B0000, 0x0B0FFF, "CU", False),
    (0x0D0000, 0x0D7FFF, "MX", False),
    (0x100000, 0x1FFFFF, "RU", False),
    (0x300000, 0x33FFFF, "IT", False),
    (0x340000, 0x37FFFF, "ES", False),
    (0x380000, 0x3BFFFF, "FR", False),
    (0x3C0000, 0x3FFFFF, "DE", False),
    (0x400000, 0x43FFFF, "GB", False),
    (0x440000, 0x447FFF, "AT", False),
    (0x448000, 0x44FFFF, "BE", False),
    (0x450000, 0x457FFF, "BG", False),
    (0x458000, 0x45FFFF, "DK", False),
    (0x460000, 0x467FFF, "FI", False),
    (0x468000, 0x46FFFF, "GR", False),
    (0x470000, 0x477FFF, "HU", False),
    (0x478000, 0x47FFFF, "NO", False),
    (0x480000, 0x487FFF, "NL", False),
    (0x488000, 0x48FFFF, "PL", False),
    (0x490000, 0x497FFF, "PT", False),
    (0x498000, 0x49FFFF, "CZ", False),
    (0x4A0000, 0x4A7FFF, "RO", False),
    (0x4A8000, 0x4AFFFF, "SE", False),
    (0x4B0000, 0x4B7FFF, "CH", False),
    (0x4B8000, 0x4BFFFF, "TR", False),
    (0x4C0000, 0x4C7FFF, "RS", False),
    (0x4C8000, 0x4C83FF, "CY", False),
    (0x4CA000, 0x4CAFFF, "IE", False),
    (0x4CC000, 0x4CCFFF, "IS", False),
    (0x4D0000, 0x4D03FF, "LU", False),
    (0x4D2000, 0x4D23FF, "MT", False),
    (0x4D4000, 0x4D43FF, "MC", False),
    (0x500000, 0x5003FF, "SM", False),
    (0x501000, 0x5013FF, "AL", False),
    (0x501C00, 0x501FFF, "HR", False),
    (0x502C00, 0x502FFF, "LV", False),
    (0x503C00, 0x503FFF, "LT", False),
    (0x504C00, 0x504FFF, "MD", False),
    (0x505C00, 0x505FFF, "SK", False),
    (0x506C00, 0x506FFF, "SI", False),
    (0x507C00, 0x507FFF, "UZ", False),
    (0x508000, 0x50FFFF, "UA", False),
    (0x510000, 0x5103FF, "BY", False),
    (0x511000, 0x5113FF, "EE", False),
    (0x512000, 0x5123FF, "MK", False),
    (0x513000, 0x5133FF, "BA", False),
    (0x514000, 0x5143FF, "GE", False),
    (0x515000, 0x5153FF, "TJ", False),
    (0x516000, 0x5163FF, "ME", False),
    (0x600000, 0x6003FF, "AM", False),
    (0x600800, 0x600BFF, "AZ", False),
    (0x601000, 0x6013FF, "KG", False),
    (0x601800, 0x601BFF, "TM", False),
    (0x700000, 0x700FFF, "AF", False),
    (0x702000, 0x702FFF, "BD", False),
    (0x704000, 0x704FFF, "MM", False),
    (0x706000, 0x706FFF, "KW", False),
    (0x708000, 0x708FFF, "LA", False),
    (0x70A000, 0x70AFFF, "NP", False),
    (0x70C000, 0x70C3FF, "OM", False),
    (0x70E000, 0x70EFFF, "KH", False),
    (0x710000, 0x717FFF, "SA", False),
    (0x718000, 0x71FFFF, "KR", False),
    (0x720000, 0x727FFF, "KP", False),
    (0x728000, 0x72FFFF, "IQ", False),
    (0x730000, 0x737FFF, "IR", False),
    (0x738000, 0x73FFFF, "IL", False),
    (0x740000, 0x747FFF, "JO", False),
    (0x748000, 0x74FFFF, "LB", False),
    (0x750000, 0x757FFF, "MY", False),
    (0x758000, 0x75FFFF, "PH", False),
    (0x760000, 0x767FFF, "PK", False),
    (0x768000, 0x76FFFF, "SG", False),
    (0x770000, 0x777FFF, "LK", False),
    (0x778000, 0x77FFFF, "SY", False),
    (0x780000, 0x7BFFFF, "CN", False),
    (0x7C0000, 0x7FFFFF, "AU", False),
    (0x800000, 0x83FFFF, "IN", False),
    (0x840000, 0x87FFFF, "JP", False),
    (0x880000, 0x887FFF, "TH", False),
    (0x888000, 0x88FFFF, "VN", False),
    (0x890000, 0x890FFF, "YE", False),
    (0x894000, 0x894FFF, "BH", False),
    (0x895000, 0x8953FF, "BN", False),
    (0x896000, 0x896FFF, "AE", False),
    (0x898000, 0x898FFF, "PG", False),
    (0x899000, 0x8993FF, "TW", False),
    (0x8A0000, 0x8A7FFF, "ID", False),
    (0xA00000, 0xADF7C7, "US", False),
    (0xADF7C8, 0xAFFFFF, "US", True),  # US military block
    (0xC00000, 0xC3FFFF, "CA", False),
    (0xC80000, 0xC87FFF, "NZ", False),
    (0xC88000, 0xC88FFF, "FJ", False),
    (0xE00000, 0xE3FFFF, "AR", False),
    (0xE40000, 0xE7FFFF, "BR", False),
    (0xE80000, 0xE80FFF, "CL", False),
    (0xE84000, 0xE84FFF, "EC", False),
    (0xE88000, 0xE88FFF, "PY", False),
    (0xE8C000, 0xE8CFFF, "PE", False),
    (0xE90000, 0xE90FFF, "UY", False),
    (0xE94000, 0xE94FFF, "BO", False),
    (0xF00000, 0xF07FFF, "XX", False),  # ICAO temporary/special use
]

DEFAULT_RANGE_TABLE = RangeTable(
    AllocationRange(start, end, country, is_military=military)
    for start, end, country, military in _COUNTRY_BLOCKS
)

# Military callsign prefixes
_MILITARY_CALLSIGNS = frozenset({
    "RCH",    # Reach (USAF tanker/transport)
    "DUKE",   # US Army
    "DOOM",   # USAF fighter
    "JAKE",   # USN
    "TOPCAT", # USMC
    "REACH",  # USAF
    "EVAC",   # Aeromedical
    "SPAR",   # Air Force special air mission
    "SAM",    # Special Air Mission
    "MOOSE",  # Canadian military
    "CANAF",  # Canadian Forces
    "ASCOT",  # Royal Air Force
    "RAFR",   # RAF Reserve
    "GAF",    # German Air Force
    "NAF",    # Netherlands Air Force
    "CNV",    # French Navy
    "FAF",    # French Air Force
    "IAM",    # Italian Air Force
    "SUI",    # Swiss Air Force
})


def lookup(table: RangeTable, addr: int) -> AllocationRange | None:
    """Find the range containing `addr`, or None if it is unallocated.

    O(log n): bisect over the sorted start addresses, then check the one
    candidate that starts at or before `addr`.
    """
    i = bisect_right(table.starts, addr) - 1
    if i < 0:
        return None
    candidate = table[i]
    if candidate.end >= addr:
        return candidate
    return None


def lookup_linear(table: RangeTable, addr: int) -> AllocationRange | None:
    """Reference scan. Same result as lookup(), O(n)."""
    for r in table:
        if r.start <= addr <= r.end:
            return r
    return None


def lookup_country(icao_hex: str, table: RangeTable | None = None) -> str | None:
    """Look up country of registration from ICAO address.

    Returns ISO country code or None if address is in an unallocated range.
    """
    addr = parse_address(icao_hex)
    allocation = lookup(table if table is not None else DEFAULT_RANGE_TABLE, addr)
    if allocation is None:
        logger.debug("Unknown ICAO hex code: %s (decimal: %d)", icao_hex, addr)
        return None
    return allocation.country_code


def is_military(icao_hex: str, callsign: str | None = None,
                table: RangeTable | None = None) -> bool:
    """Check if an aircraft is military.

    Two detection methods:
    1. ICAO address in an allocation flagged military
    2. Callsign matches known military patterns
    """
    addr = parse_address(icao_hex)
    allocation = lookup(table if table is not None else DEFAULT_RANGE_TABLE, addr)
    if allocation is not None and allocation.is_military:
        return True

    if callsign:
        cs = callsign.strip().upper()
        for prefix in _MILITARY_CALLSIGNS:
            if cs.startswith(prefix):
                return True

    return False
