"""24-bit address ranges — the in-memory allocation table.

An ICAO address is a 24-bit integer (0x000000-0xFFFFFF). Allocations are
contiguous inclusive ranges assigned to a country:

    AllocationRange(0x460000, 0x467FFF, "FI")

A RangeTable is an immutable, sorted, non-overlapping sequence of ranges.
It is built once by the offline pipeline (expand -> merge) and then shared
read-only by every classification call.

Addresses are carried as integers everywhere inside the engine. Hex strings
only appear at the edges (parse_address on the way in, format_address on
the way out).
"""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, Iterator

from .errors import InvalidRangeError, OverlappingRangeError

ADDRESS_MIN = 0x000000
ADDRESS_MAX = 0xFFFFFF

# Bitmask stamped on /24 blocks by the canonical pipeline
DEFAULT_BITMASK = 0xFFFF00

_HEX_RE = re.compile(r"^[0-9A-Fa-f]{6}$")


def parse_address(value) -> int:
    """Parse a 24-bit address from a 6-digit hex string or an int.

    Raises InvalidRangeError for anything else: wrong width, non-hex
    characters, bools, negative or oversized integers.
    """
    if isinstance(value, bool):
        raise InvalidRangeError(f"Invalid address: {value!r}")
    if isinstance(value, int):
        if not (ADDRESS_MIN <= value <= ADDRESS_MAX):
            raise InvalidRangeError(f"Address out of 24-bit range: {value}")
        return value
    if isinstance(value, str):
        text = value.strip()
        if not _HEX_RE.match(text):
            raise InvalidRangeError(f"Address must be 6 hex digits: {value!r}")
        return int(text, 16)
    raise InvalidRangeError(f"Invalid address: {value!r}")


def format_address(addr: int) -> str:
    """Format an address as 6 upper-case hex digits (e.g. 0x464a91 -> '464A91')."""
    return f"{addr:06X}"


@dataclass(frozen=True)
class AllocationRange:
    """A contiguous block of addresses allocated to one country."""

    start: int
    end: int  # Inclusive
    country_code: str
    is_military: bool = False
    significant_bitmask: int = DEFAULT_BITMASK  # Provenance only

    def __post_init__(self):
        for bound in (self.start, self.end):
            if isinstance(bound, bool) or not isinstance(bound, int):
                raise InvalidRangeError(f"Range bound must be an integer: {bound!r}")
            if not (ADDRESS_MIN <= bound <= ADDRESS_MAX):
                raise InvalidRangeError(f"Range bound out of 24-bit range: {bound:#x}")
        if self.start > self.end:
            raise InvalidRangeError(
                f"Range start {format_address(self.start)} is after end {format_address(self.end)}"
            )

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    @property
    def start_hex(self) -> str:
        return format_address(self.start)

    @property
    def end_hex(self) -> str:
        return format_address(self.end)

    def contains(self, addr: int) -> bool:
        return self.start <= addr <= self.end

    def same_attributes(self, other: AllocationRange) -> bool:
        """True if both ranges carry the same country, military flag and bitmask."""
        return (
            self.country_code == other.country_code
            and self.is_military == other.is_military
            and self.significant_bitmask == other.significant_bitmask
        )

    def to_dict(self) -> dict:
        """Slim hex form used for persisted tables."""
        return {
            "startHex": self.start_hex,
            "finishHex": self.end_hex,
            "isMilitary": self.is_military,
            "countryISO2": self.country_code,
            "significantBitmask": format_address(self.significant_bitmask),
        }


# Produced by merge.expand; same shape, fixed granularity
CanonicalBlock = AllocationRange


class RangeTable:
    """Immutable sorted, non-overlapping sequence of AllocationRange.

    Ranges are sorted by start on construction. Any two ranges sharing an
    address raise OverlappingRangeError; nothing is silently resolved.
    """

    __slots__ = ("_ranges", "_starts")

    def __init__(self, ranges: Iterable[AllocationRange] = ()):
        ordered = sorted(ranges, key=lambda r: (r.start, r.end))
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.start <= prev.end:
                raise OverlappingRangeError(prev, cur)
        self._ranges: tuple[AllocationRange, ...] = tuple(ordered)
        self._starts: tuple[int, ...] = tuple(r.start for r in ordered)

    @property
    def ranges(self) -> tuple[AllocationRange, ...]:
        return self._ranges

    @property
    def starts(self) -> tuple[int, ...]:
        """Start addresses in ascending order (bisect key for lookups)."""
        return self._starts

    def __len__(self) -> int:
        return len(self._ranges)

    def __iter__(self) -> Iterator[AllocationRange]:
        return iter(self._ranges)

    def __getitem__(self, index):
        return self._ranges[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, RangeTable):
            return NotImplemented
        return self._ranges == other._ranges

    def __hash__(self) -> int:
        return hash(self._ranges)

    def __repr__(self) -> str:
        return f"RangeTable({len(self._ranges)} ranges)"

    def intersecting(self, start: int, end: int) -> list[AllocationRange]:
        """Ranges sharing at least one address with [start, end], ascending."""
        # First candidate is the range that could contain `start`
        i = max(bisect_right(self._starts, start) - 1, 0)
        result = []
        for r in self._ranges[i:]:
            if r.start > end:
                break
            if r.end >= start:
                result.append(r)
        return result

    def for_country(self, country_code: str) -> list[AllocationRange]:
        code = country_code.strip().upper()
        return [r for r in self._ranges if r.country_code == code]
