"""Gap planning — find unallocated address space and place new allocations.

find_gaps() walks the ranges of a region in address order with a cursor:

    region 500000-500FFF, ranges 500000-5003FF (X), 500800-500BFF (Y)
    cursor 500000 -> X covers it          -> cursor 500400
    Y starts at 500800 > cursor           -> gap 500400-5007FF (0x400)
    cursor 500C00, trailing 500C00-500FFF -> gap only if size > min_size

allocate() then hands out fixed-size blocks to a priority-ordered list of
pending countries, front-to-back through the gaps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import InvalidRangeError
from .ranges import (
    ADDRESS_MAX,
    ADDRESS_MIN,
    DEFAULT_BITMASK,
    AllocationRange,
    RangeTable,
    format_address,
)

logger = logging.getLogger(__name__)

# Minimum allocation for a small state
DEFAULT_ALLOCATION_SIZE = 0x400


@dataclass(frozen=True)
class Gap:
    start: int
    end: int  # Inclusive

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    @property
    def start_hex(self) -> str:
        return format_address(self.start)

    @property
    def end_hex(self) -> str:
        return format_address(self.end)

    def to_dict(self) -> dict:
        return {"startHex": self.start_hex, "endHex": self.end_hex, "size": self.size}


@dataclass(frozen=True)
class PendingCountry:
    """A country expected to hold an allocation in the planned region."""
    code: str
    priority: int  # Lower is placed first
    name: str = ""


# European states the original allocation data was missing, in placement order
DEFAULT_PENDING: list[PendingCountry] = [
    PendingCountry("LT", 1, "Lithuania"),
    PendingCountry("LV", 1, "Latvia"),
    PendingCountry("EE", 1, "Estonia"),
    PendingCountry("MD", 2, "Moldova"),
    PendingCountry("AL", 2, "Albania"),
    PendingCountry("MK", 2, "North Macedonia"),
    PendingCountry("ME", 2, "Montenegro"),
    PendingCountry("BA", 2, "Bosnia and Herzegovina"),
    PendingCountry("RS", 2, "Serbia"),
    PendingCountry("BG", 3, "Bulgaria"),
    PendingCountry("RO", 3, "Romania"),
    PendingCountry("HR", 3, "Croatia"),
    PendingCountry("SI", 3, "Slovenia"),
    PendingCountry("SK", 3, "Slovakia"),
    PendingCountry("CZ", 3, "Czech Republic"),
]

# Small European state allocations
DEFAULT_REGION = (0x500000, 0x52FFFF)


def _check_region(region_start: int, region_end: int):
    for bound in (region_start, region_end):
        if not (ADDRESS_MIN <= bound <= ADDRESS_MAX):
            raise InvalidRangeError(f"Region bound out of 24-bit range: {bound:#x}")
    if region_start > region_end:
        raise InvalidRangeError(
            f"Region start {format_address(region_start)} is after end {format_address(region_end)}"
        )


def find_gaps(table: RangeTable, region_start: int, region_end: int, min_size: int = 0) -> list[Gap]:
    """Maximal unallocated spans of [region_start, region_end] of at least min_size.

    The span after the last range is only reported when larger than min_size,
    so the default of 0 reports every gap, even a single trailing address.
    """
    _check_region(region_start, region_end)
    if min_size < 0:
        raise ValueError(f"min_size must not be negative, got {min_size}")

    gaps: list[Gap] = []
    cursor = region_start
    for r in table.intersecting(region_start, region_end):
        if r.start > cursor:
            gap = Gap(cursor, r.start - 1)
            if gap.size >= min_size:
                gaps.append(gap)
        cursor = max(cursor, r.end + 1)

    # The open-ended remainder must exceed min_size, not just reach it
    if cursor <= region_end:
        gap = Gap(cursor, region_end)
        if gap.size > min_size:
            gaps.append(gap)
    return gaps


def missing_countries(table: RangeTable, pending: list[PendingCountry],
                      region_start: int, region_end: int) -> list[PendingCountry]:
    """Pending countries with no range anywhere in the region."""
    _check_region(region_start, region_end)
    present = {r.country_code for r in table.intersecting(region_start, region_end)}
    return [p for p in pending if p.code.upper() not in present]


def allocate(pending: list[PendingCountry], gaps: list[Gap],
             block_size: int = DEFAULT_ALLOCATION_SIZE) -> list[AllocationRange]:
    """Place one block per pending country, lowest priority number first.

    Countries with equal priority keep their configured order. Space is
    consumed front-to-back within each gap; when the rest of a gap is too
    small the next gap is used. Countries that don't fit anywhere are
    logged and skipped.
    """
    if block_size < 1:
        raise ValueError(f"block_size must be positive, got {block_size}")

    ordered = sorted(pending, key=lambda p: p.priority)
    gap_iter = iter(sorted(gaps, key=lambda g: g.start))
    gap = next(gap_iter, None)
    position = gap.start if gap else 0

    allocations: list[AllocationRange] = []
    for country in ordered:
        while gap is not None and position + block_size - 1 > gap.end:
            gap = next(gap_iter, None)
            if gap is not None:
                position = gap.start
        if gap is None:
            logger.warning("No gap left for %s (%s)", country.code, country.name or "?")
            continue
        allocations.append(AllocationRange(
            start=position,
            end=position + block_size - 1,
            country_code=country.code.upper(),
            is_military=False,
            significant_bitmask=DEFAULT_BITMASK,
        ))
        position += block_size
    return allocations
