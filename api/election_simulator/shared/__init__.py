"""Shared data contracts for the resolver, the reconciler and the aggregator.

These define the canonical field names for per-county state. Every component
reads and writes county records through these contracts so that a record can
never be observed with inconsistent vote totals.

Usage:
    from election_simulator.shared.data_contracts import CountySimulationState

    state = CountySimulationState.from_votes(
        fips="01001",
        dem_votes=1200,
        gop_votes=1500,
        total_votes=2800,
        reporting_percent=40.0,
    )
    state.current_other_votes  # 100
"""

from election_simulator.shared.data_contracts import (
    FULLY_REPORTED_THRESHOLD,
    CountySimulationState,
    EntityMetadata,
    normalize_fips,
)
from election_simulator.shared.errors import (
    ElectionSimulatorError,
    VoteSumError,
)

__all__ = [
    "CountySimulationState",
    "ElectionSimulatorError",
    "EntityMetadata",
    "FULLY_REPORTED_THRESHOLD",
    "VoteSumError",
    "normalize_fips",
]
