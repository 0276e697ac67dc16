"""Multi-source country consensus — allocation vs registration vs operator.

Three independent sources can each name a country for one aircraft:

    allocation:    24-bit address -> allocated range  (icao.lookup)
    registration:  tail number -> nationality prefix  (registration.resolve_registration)
    operator:      callsign -> airline designator     (operators.resolve_callsign)

classify() runs all that apply and compares the countries that resolved:

    one distinct country   -> AGREEMENT
    several                -> MISMATCH (with per-source detail)
    none                   -> INSUFFICIENT_DATA

No source is preferred over another here. A leased aircraft, a military
serial or a stale range table all show up as a mismatch, which is the point.
Picking one country to show a user is display_country()'s job, kept apart.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from itertools import combinations

from .icao import lookup
from .operators import CallsignMatch, OperatorTable, resolve_callsign
from .ranges import AllocationRange, RangeTable, format_address
from .registration import (
    PrefixTable,
    RegistrationMatch,
    military_registration,
    resolve_registration,
)

logger = logging.getLogger(__name__)

SOURCE_ALLOCATION = "allocation"
SOURCE_REGISTRATION = "registration"
SOURCE_OPERATOR = "operator"


class Status(str, Enum):
    AGREEMENT = "agreement"
    PARTIAL_DATA = "partial_data"
    INSUFFICIENT_DATA = "insufficient_data"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class ClassificationInput:
    address: int
    registration: str | None = None
    callsign: str | None = None


@dataclass(frozen=True)
class MismatchDetail:
    """Per-source countries behind a mismatch."""
    sources: dict[str, str | None]

    @property
    def disagreements(self) -> list[tuple[str, str]]:
        """Pairs of resolved sources that name different countries."""
        resolved = [(s, c) for s, c in self.sources.items() if c is not None]
        return [
            (a, b) for (a, ca), (b, cb) in combinations(resolved, 2) if ca != cb
        ]

    def describe(self) -> list[str]:
        return [
            f"{a} says {self.sources[a]}, {b} says {self.sources[b]}"
            for a, b in self.disagreements
        ]


@dataclass(frozen=True)
class ClassificationVerdict:
    allocation_country: str | None
    registration_country: str | None
    operator_country: str | None
    country_set: frozenset[str]
    status: Status
    detail: MismatchDetail | None = None

    # Underlying matches, for display
    allocation: AllocationRange | None = None
    registration_match: RegistrationMatch | None = None
    callsign_match: CallsignMatch | None = None

    @property
    def sources(self) -> dict[str, str | None]:
        return {
            SOURCE_ALLOCATION: self.allocation_country,
            SOURCE_REGISTRATION: self.registration_country,
            SOURCE_OPERATOR: self.operator_country,
        }

    @property
    def is_partial(self) -> bool:
        """True when at least one of the three sources did not resolve."""
        return any(c is None for c in self.sources.values())

    @property
    def qualified_status(self) -> Status:
        """Status with agreement downgraded to PARTIAL_DATA when a source is missing."""
        if self.status is Status.AGREEMENT and self.is_partial:
            return Status.PARTIAL_DATA
        return self.status

    def to_dict(self) -> dict:
        return {
            "allocation_country": self.allocation_country,
            "registration_country": self.registration_country,
            "operator_country": self.operator_country,
            "country_set": sorted(self.country_set),
            "status": self.status.value,
            "qualified_status": self.qualified_status.value,
            "detail": {
                "sources": self.detail.sources,
                "disagreements": [list(p) for p in self.detail.disagreements],
            } if self.detail else None,
            "allocation": {
                "start": self.allocation.start_hex,
                "end": self.allocation.end_hex,
                "is_military": self.allocation.is_military,
            } if self.allocation else None,
            "registration_prefix": (
                self.registration_match.matched_prefix if self.registration_match else None
            ),
            "operator": {
                "code": self.callsign_match.code,
                "name": self.callsign_match.operator.name,
            } if self.callsign_match else None,
        }


@dataclass(frozen=True)
class MismatchReport:
    """Flat, append-only record for external mismatch tracking."""
    address: str
    registration: str
    callsign: str
    allocation_country: str | None
    registration_country: str | None
    operator_country: str | None
    timestamp: str  # ISO-8601, UTC

    def to_dict(self) -> dict:
        return asdict(self)


def classify(table: RangeTable, prefixes: PrefixTable, operators: OperatorTable,
             inp: ClassificationInput) -> ClassificationVerdict:
    """Resolve every available source and compare the countries they name."""
    allocation = lookup(table, inp.address)
    if allocation is None:
        logger.debug("Unallocated address %s", format_address(inp.address))

    reg_match = resolve_registration(prefixes, inp.registration) if inp.registration else None
    cs_match = resolve_callsign(operators, inp.callsign) if inp.callsign else None

    sources = {
        SOURCE_ALLOCATION: allocation.country_code if allocation else None,
        SOURCE_REGISTRATION: reg_match.country_code if reg_match else None,
        SOURCE_OPERATOR: cs_match.country_code if cs_match else None,
    }
    country_set = frozenset(c for c in sources.values() if c is not None)

    detail = None
    if len(country_set) > 1:
        status = Status.MISMATCH
        detail = MismatchDetail(sources=sources)
    elif len(country_set) == 1:
        status = Status.AGREEMENT
    else:
        status = Status.INSUFFICIENT_DATA

    return ClassificationVerdict(
        allocation_country=sources[SOURCE_ALLOCATION],
        registration_country=sources[SOURCE_REGISTRATION],
        operator_country=sources[SOURCE_OPERATOR],
        country_set=country_set,
        status=status,
        detail=detail,
        allocation=allocation,
        registration_match=reg_match,
        callsign_match=cs_match,
    )


def build_report(inp: ClassificationInput, verdict: ClassificationVerdict,
                 now: datetime | None = None) -> MismatchReport | None:
    """Build the tracking record for a mismatch. Returns None otherwise."""
    if verdict.status is not Status.MISMATCH:
        return None
    now = now or datetime.now(timezone.utc)
    return MismatchReport(
        address=format_address(inp.address),
        registration=(inp.registration or "").strip().upper(),
        callsign=(inp.callsign or "").strip().upper(),
        allocation_country=verdict.allocation_country,
        registration_country=verdict.registration_country,
        operator_country=verdict.operator_country,
        timestamp=now.isoformat(),
    )


def display_country(verdict: ClassificationVerdict, registration: str | None = None) -> str | None:
    """Pick one country to show a user.

    Order: military registration pattern, registration prefix, address
    allocation, operator. This is a presentation choice only; classify()
    itself never ranks sources.
    """
    pattern = military_registration(registration)
    if pattern is not None:
        return pattern.country_code
    for country in (verdict.registration_country, verdict.allocation_country,
                    verdict.operator_country):
        if country is not None:
            return country
    return None
