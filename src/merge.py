"""Offline range pipeline — canonical block expansion and coalescing.

Raw allocation data is chunked however its source happened to chunk it.
The pipeline normalizes it in two steps:

1. expand: split every range into fixed-size blocks (default 256 addresses,
   one /24 of the 24-bit space) carrying the range's attributes. The last
   block of a range is clipped to the range end.
2. merge: sort the blocks and greedily coalesce neighbours that are
   address-contiguous and share country, military flag and bitmask.

The result is the minimal RangeTable. Overlapping input is a configuration
error and aborts the run; a partially merged table is never returned.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from .errors import InvalidRangeError, OverlappingRangeError
from .ranges import AllocationRange, CanonicalBlock, RangeTable

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 256


def expand(ranges: Iterable[AllocationRange], block_size: int = DEFAULT_BLOCK_SIZE) -> list[CanonicalBlock]:
    """Split ranges into consecutive blocks of `block_size` addresses.

    Blocks start at each range's own start and never cross its end. Output
    follows input order; it is not sorted.
    """
    if block_size < 1:
        raise ValueError(f"block_size must be positive, got {block_size}")

    blocks: list[CanonicalBlock] = []
    for r in ranges:
        if r.start > r.end:
            raise InvalidRangeError(f"Range start {r.start_hex} is after end {r.end_hex}")
        for start in range(r.start, r.end + 1, block_size):
            end = min(start + block_size - 1, r.end)
            blocks.append(replace(r, start=start, end=end))
    return blocks


def merge(blocks: Iterable[AllocationRange]) -> RangeTable:
    """Coalesce contiguous same-attribute blocks into a fully reduced RangeTable."""
    ordered = sorted(blocks, key=lambda b: (b.start, b.end))
    merged: list[AllocationRange] = []

    current: AllocationRange | None = None
    for block in ordered:
        if current is None:
            current = block
            continue
        if block.start <= current.end:
            raise OverlappingRangeError(current, block)
        if block.start == current.end + 1 and block.same_attributes(current):
            current = replace(current, end=block.end)
        else:
            merged.append(current)
            current = block
    if current is not None:
        merged.append(current)

    return RangeTable(merged)


def canonicalize(ranges: Iterable[AllocationRange], block_size: int = DEFAULT_BLOCK_SIZE) -> RangeTable:
    """Run the full expand -> merge pipeline."""
    ranges = list(ranges)
    blocks = expand(ranges, block_size)
    logger.info("Expanded %d ranges into %d blocks of %d", len(ranges), len(blocks), block_size)
    table = merge(blocks)
    logger.info("Merged %d blocks into %d ranges", len(blocks), len(table))
    return table
