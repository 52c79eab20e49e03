"""Aggregation of reconciled county state into national results."""
from election_simulator.analytics.aggregation import (
    Aggregates,
    OutstandingVotes,
    aggregate,
    compute_win_probability,
    expected_totals_from,
    outstanding_by_state,
    resolve_leader,
)

__all__ = [
    "Aggregates",
    "OutstandingVotes",
    "aggregate",
    "compute_win_probability",
    "expected_totals_from",
    "outstanding_by_state",
    "resolve_leader",
]
