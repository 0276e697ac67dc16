"""Error kinds for table construction and input validation.

Lookup misses are not errors: an unallocated address, unknown prefix or
unknown operator code is returned as None by the resolvers.
"""

from __future__ import annotations


class TableError(ValueError):
    """Base class for structural problems in range, prefix or operator tables."""


class InvalidRangeError(TableError):
    """Range bounds are reversed, out of the 24-bit space, or not valid hex."""


class OverlappingRangeError(TableError):
    """Two ranges claim the same address."""

    def __init__(self, first, second):
        self.first = first
        self.second = second
        super().__init__(
            f"Overlapping ranges: {first.start_hex}-{first.end_hex} ({first.country_code}) "
            f"and {second.start_hex}-{second.end_hex} ({second.country_code})"
        )


class DuplicatePrefixError(TableError):
    """A prefix table was built with the same key twice."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        super().__init__(f"Duplicate registration prefix: {prefix!r}")
