"""Canonical data structures shared between the resolver, the store and the aggregator.

These define the SINGLE SOURCE OF TRUTH for county field names and types.

IMPORTANT: A CountySimulationState is always built through
``CountySimulationState.from_votes`` (or an equivalent full construction), so
``current_total_votes == current_dem_votes + current_gop_votes + current_other_votes``
holds for every record that exists.

Example:
    >>> from election_simulator.shared.data_contracts import CountySimulationState
    >>> state = CountySimulationState.from_votes(
    ...     fips="1001",
    ...     dem_votes=1200,
    ...     gop_votes=1500,
    ...     total_votes=2800,
    ...     reporting_percent=40.0,
    ... )
    >>> state.fips, state.current_other_votes
    ('01001', 100)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Any, Literal

from election_simulator.shared.errors import VoteSumError

FIPS_WIDTH = 5
FULLY_REPORTED_THRESHOLD = 99.9

Geography = Literal["rural", "suburban", "urban"]
GEOGRAPHIES: tuple[str, ...] = ("rural", "suburban", "urban")


def normalize_fips(value: Any) -> str | None:
    """Normalize a county identifier to its fixed-width zero-padded form.

    Accepts strings and integers (integral floats from loosely typed JSON
    too). Returns None for empty or missing values.

    Args:
        value: Raw identifier from a document or a message.

    Returns:
        Five-character identifier, or None if there is nothing to normalize.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    text = str(value).strip()
    if not text:
        return None
    return text.rjust(FIPS_WIDTH, "0")


@dataclass(frozen=True)
class EntityMetadata:
    """Read-only description of one county, supplied by the results collaborator.

    Fields:
        fips: Five-character county identifier
        name: County name (used for alphabetical ordering)
        state: State name or postal code
        geography: rural, suburban or urban
        region: Free-form region label (east, midwest, sunbelt, ...)
        population: Population baseline
        expected_total_votes: Expected final vote count
        dem_share: Expected DEM share of the final count (0.0-1.0)
        gop_share: Expected GOP share of the final count (0.0-1.0)
        order_position: Position inside an ordering cohort in [0, 1]
    """

    fips: str
    name: str = ""
    state: str = ""
    geography: str | None = None
    region: str | None = None
    population: int = 0
    expected_total_votes: int = 0
    dem_share: float = 0.48
    gop_share: float = 0.48
    order_position: float | None = None

    def __post_init__(self) -> None:
        normalized = normalize_fips(self.fips)
        if normalized is None:
            raise ValueError("EntityMetadata requires a non-empty fips")
        object.__setattr__(self, "fips", normalized)
        if self.geography is not None:
            object.__setattr__(self, "geography", self.geography.lower())
        if self.region is not None:
            object.__setattr__(self, "region", self.region.lower())

    def with_order_position(self, position: float | None) -> EntityMetadata:
        """Return a copy placed at ``position`` inside an ordering cohort."""
        return replace(self, order_position=position)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EntityMetadata:
        """Create from a county-results row, accepting camelCase or snake_case keys.

        The expected total falls back to ``totalVotes`` (a final-results row).
        """

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        return cls(
            fips=pick("fips", default=""),
            name=pick("county", "name", default=""),
            state=pick("state", default=""),
            geography=pick("geography"),
            region=pick("region"),
            population=int(pick("population", default=0)),
            expected_total_votes=int(
                pick("expectedTotalVotes", "expected_total_votes", "totalVotes", "total_votes", default=0)
            ),
            dem_share=float(pick("demShare", "dem_share", default=0.48)),
            gop_share=float(pick("gopShare", "gop_share", default=0.48)),
        )


@dataclass(frozen=True)
class CountySimulationState:
    """Runtime state for a single county during a simulation session.

    Fields:
        fips: Five-character county identifier
        current_dem_votes: DEM votes reported so far
        current_gop_votes: GOP votes reported so far
        current_other_votes: Votes for everyone else
        current_total_votes: Sum of the three counts above
        current_reporting_percent: Reporting percentage (0-100)
        last_update_time: Wall-clock time of the last write (bookkeeping only)

    Properties:
        is_fully_reported: Reporting percent at or above 99.9 (derived, not stored)
    """

    fips: str
    current_dem_votes: int
    current_gop_votes: int
    current_other_votes: int
    current_total_votes: int
    current_reporting_percent: float
    last_update_time: float

    def __post_init__(self) -> None:
        counts = (
            self.current_dem_votes,
            self.current_gop_votes,
            self.current_other_votes,
            self.current_total_votes,
        )
        if any(count < 0 for count in counts):
            raise VoteSumError(self.fips, f"negative vote count in {counts}")
        expected = self.current_dem_votes + self.current_gop_votes + self.current_other_votes
        if expected != self.current_total_votes:
            raise VoteSumError(
                self.fips,
                f"total_votes={self.current_total_votes} does not equal "
                f"dem+gop+other={expected}",
            )

    @property
    def is_fully_reported(self) -> bool:
        """Whether the county has finished reporting."""
        return self.current_reporting_percent >= FULLY_REPORTED_THRESHOLD

    @property
    def margin(self) -> int:
        """GOP minus DEM votes."""
        return self.current_gop_votes - self.current_dem_votes

    @classmethod
    def from_votes(
        cls,
        fips: str,
        dem_votes: int,
        gop_votes: int,
        total_votes: int,
        reporting_percent: float,
        last_update_time: float | None = None,
    ) -> CountySimulationState:
        """Build a record from server counts, deriving the other-party votes.

        ``other = max(0, total - dem - gop)``. A total smaller than dem + gop
        cannot be reconciled and raises VoteSumError.

        Raises:
            VoteSumError: If counts are negative or dem + gop exceeds total
        """
        normalized = normalize_fips(fips)
        if normalized is None:
            raise VoteSumError(str(fips), "missing fips")
        if dem_votes + gop_votes > total_votes:
            raise VoteSumError(
                normalized,
                f"dem_votes={dem_votes} + gop_votes={gop_votes} exceeds total_votes={total_votes}",
            )
        other_votes = max(0, total_votes - dem_votes - gop_votes)
        return cls(
            fips=normalized,
            current_dem_votes=dem_votes,
            current_gop_votes=gop_votes,
            current_other_votes=other_votes,
            current_total_votes=total_votes,
            current_reporting_percent=reporting_percent,
            last_update_time=time.time() if last_update_time is None else last_update_time,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys for the dashboard layer."""
        return {
            "fips": self.fips,
            "currentDemVotes": self.current_dem_votes,
            "currentGopVotes": self.current_gop_votes,
            "currentOtherVotes": self.current_other_votes,
            "currentTotalVotes": self.current_total_votes,
            "currentReportingPercent": self.current_reporting_percent,
            "lastUpdateTime": self.last_update_time,
            "isFullyReported": self.is_fully_reported,
        }
