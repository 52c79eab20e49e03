"""Result aggregation over a store snapshot.

Every function here is a pure reduction: the same snapshot and inputs always
produce the same output, and nothing is cached between calls.

Functions:
    aggregate: National totals, margins, reporting completion and win probability
    compute_win_probability: GOP win probability from margin and outstanding votes
    outstanding_by_state: Per-state outstanding votes and estimated leans
    expected_totals_from: Expected vote totals keyed by fips from a county catalog

Types:
    Aggregates: TypedDict with all aggregate fields
    OutstandingVotes: TypedDict for one state's outstanding votes
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Literal, TypedDict

from election_simulator.shared.data_contracts import (
    FULLY_REPORTED_THRESHOLD,
    EntityMetadata,
    normalize_fips,
)

if TYPE_CHECKING:
    from election_simulator.streaming.store import StoreSnapshot

Leader = Literal["DEM", "GOP", "TIE"]

WIN_PROBABILITY_SCALING = 160.0
LEAN_CONFIDENCE = 0.95
DEFAULT_PARTY_SHARE = 0.48


class Aggregates(TypedDict):
    """National aggregates derived from a snapshot.

    Margins are signed GOP minus DEM; ``win_probability`` is the GOP win
    probability in [0, 100], so 50 means a toss-up.

    Attributes:
        total_dem: Reported Democratic votes.
        total_gop: Reported Republican votes.
        total_other: Reported votes for everyone else.
        total_votes: All reported votes.
        dem_percent: Democratic share of reported votes (0-100).
        gop_percent: Republican share of reported votes (0-100).
        other_percent: Other share of reported votes (0-100).
        counties_reporting: Counties with any reporting.
        total_counties: Counties expected to report.
        fully_reported: Counties at or above the fully-reported threshold.
        in_progress: Counties reporting but not finished.
        not_started: Counties with nothing reported.
        reporting_percent: Share of counties reporting (0-100).
        vote_reporting_percent: Share of expected votes reported (0-100).
        expected_total_votes: Expected votes across all counties.
        votes_remaining: Expected minus reported, floored at 0.
        vote_margin_absolute: GOP minus DEM votes.
        vote_margin_percent: GOP minus DEM percent.
        leader: GOP, DEM or TIE.
        win_probability: GOP win probability (0-100).
        reporting_eta_seconds: Projected seconds until every county reports.
        vote_eta_seconds: Projected seconds until every expected vote is in.
    """

    total_dem: int
    total_gop: int
    total_other: int
    total_votes: int
    dem_percent: float
    gop_percent: float
    other_percent: float
    counties_reporting: int
    total_counties: int
    fully_reported: int
    in_progress: int
    not_started: int
    reporting_percent: float
    vote_reporting_percent: float
    expected_total_votes: int
    votes_remaining: int
    vote_margin_absolute: int
    vote_margin_percent: float
    leader: Leader
    win_probability: float
    reporting_eta_seconds: float | None
    vote_eta_seconds: float | None


class OutstandingVotes(TypedDict):
    """Outstanding votes for one state with an estimated partisan lean."""

    state: str
    state_code: str
    outstanding: int
    outstanding_percent: float
    dem_lean: int
    gop_lean: int
    uncertain: int
    potential_swing: int
    current_margin: int
    reporting_percent: float


def resolve_leader(margin_votes: float) -> Leader:
    """GOP for a positive margin, DEM for a negative one, TIE at zero."""
    if margin_votes > 0:
        return "GOP"
    if margin_votes < 0:
        return "DEM"
    return "TIE"


def compute_win_probability(margin_votes: int, reported_votes: int, votes_remaining: int) -> float:
    """GOP win probability from the current margin and the votes still out.

    The lead's share of reported votes is scaled up as the outstanding share
    shrinks. Once the remaining votes cannot overturn the lead the race is
    decided (0 or 100).

    Args:
        margin_votes: GOP minus DEM votes.
        reported_votes: Votes reported so far.
        votes_remaining: Expected votes not yet reported.

    Returns:
        Probability in [0, 100]; 50 for a tie.

    Example:
        >>> compute_win_probability(0, 1000, 500)
        50.0
        >>> compute_win_probability(600, 1000, 500)
        100.0
    """
    if margin_votes == 0:
        return 50.0
    direction = 1.0 if margin_votes > 0 else -1.0
    lead = abs(margin_votes)
    remaining = max(0, votes_remaining)

    if lead > remaining:
        return 50.0 + direction * 50.0

    margin_share = lead / max(reported_votes, 1)
    outstanding_share = remaining / max(reported_votes + remaining, 1)
    swing = min(50.0, margin_share * WIN_PROBABILITY_SCALING * (1.0 + (1.0 - outstanding_share)))
    return 50.0 + direction * swing


def _expected_total(expected_totals: Mapping[str, int] | int) -> int:
    if isinstance(expected_totals, Mapping):
        return sum(max(0, int(v or 0)) for v in expected_totals.values())
    return max(0, int(expected_totals))


def _eta(percent: float, elapsed_seconds: float) -> float | None:
    if elapsed_seconds <= 0 or percent <= 0:
        return None
    velocity = percent / max(elapsed_seconds, 1.0)
    return max((100.0 - percent) / velocity, 0.0)


def aggregate(
    snapshot: StoreSnapshot,
    expected_totals: Mapping[str, int] | int,
    *,
    counties_total: int | None = None,
    elapsed_seconds: float = 0.0,
) -> Aggregates:
    """Reduce a snapshot to national aggregates.

    Args:
        snapshot: Immutable store snapshot.
        expected_totals: Expected votes per fips, or the national expected total.
        counties_total: Counties expected to report; defaults to the number
            of counties in the snapshot.
        elapsed_seconds: Simulation time so far, used for the ETAs.

    Returns:
        Aggregates dict. Calling twice with the same inputs returns equal dicts.

    Example:
        >>> result = aggregate(store.snapshot(), {"01001": 25_000})
        >>> result["leader"]
        'GOP'
    """
    total_dem = total_gop = total_other = total_votes = 0
    counties_reporting = fully_reported = in_progress = not_started = 0

    for state in snapshot:
        total_dem += state.current_dem_votes
        total_gop += state.current_gop_votes
        total_other += state.current_other_votes
        total_votes += state.current_total_votes

        if state.current_reporting_percent > 0:
            counties_reporting += 1
            if state.current_reporting_percent >= FULLY_REPORTED_THRESHOLD:
                fully_reported += 1
            else:
                in_progress += 1
        else:
            not_started += 1

    total_counties = counties_total if counties_total and counties_total > 0 else len(snapshot)

    def share(votes: int) -> float:
        return votes / total_votes * 100.0 if total_votes > 0 else 0.0

    dem_percent = share(total_dem)
    gop_percent = share(total_gop)
    reporting_percent = counties_reporting / total_counties * 100.0 if total_counties > 0 else 0.0

    expected_total_votes = _expected_total(expected_totals)
    votes_remaining = max(expected_total_votes - total_votes, 0)
    if expected_total_votes > 0:
        vote_reporting_percent = min(total_votes / expected_total_votes * 100.0, 100.0)
    else:
        vote_reporting_percent = reporting_percent

    margin = total_gop - total_dem

    return Aggregates(
        total_dem=total_dem,
        total_gop=total_gop,
        total_other=total_other,
        total_votes=total_votes,
        dem_percent=dem_percent,
        gop_percent=gop_percent,
        other_percent=share(total_other),
        counties_reporting=counties_reporting,
        total_counties=total_counties,
        fully_reported=fully_reported,
        in_progress=in_progress,
        not_started=not_started,
        reporting_percent=reporting_percent,
        vote_reporting_percent=vote_reporting_percent,
        expected_total_votes=expected_total_votes,
        votes_remaining=votes_remaining,
        vote_margin_absolute=margin,
        vote_margin_percent=gop_percent - dem_percent,
        leader=resolve_leader(margin),
        win_probability=compute_win_probability(margin, total_votes, votes_remaining),
        reporting_eta_seconds=_eta(reporting_percent, elapsed_seconds),
        vote_eta_seconds=_eta(vote_reporting_percent, elapsed_seconds),
    )


def outstanding_by_state(
    snapshot: StoreSnapshot, entities: Iterable[EntityMetadata]
) -> list[OutstandingVotes]:
    """Outstanding votes per state, largest potential swing first.

    Leans assume the outstanding votes split like the votes already
    reported in that state (48/48 before anything is in), discounted to 95%;
    the rest is uncertain. States with nothing outstanding are left out.
    """
    totals: dict[str, dict[str, int]] = {}
    for entity in entities:
        label = (entity.state or "Unknown").upper()
        bucket = totals.setdefault(label, {"expected": 0, "reported": 0, "dem": 0, "gop": 0})
        bucket["expected"] += max(0, entity.expected_total_votes)
        state = snapshot.get(entity.fips)
        if state is not None:
            bucket["reported"] += state.current_total_votes
            bucket["dem"] += state.current_dem_votes
            bucket["gop"] += state.current_gop_votes

    rows: list[OutstandingVotes] = []
    for label, bucket in totals.items():
        expected = bucket["expected"]
        reported = bucket["reported"]
        outstanding = max(expected - reported, 0)
        if outstanding <= 0:
            continue

        dem_share = bucket["dem"] / reported if reported > 0 else DEFAULT_PARTY_SHARE
        gop_share = bucket["gop"] / reported if reported > 0 else DEFAULT_PARTY_SHARE
        dem_lean = round(outstanding * dem_share * LEAN_CONFIDENCE)
        gop_lean = round(outstanding * gop_share * LEAN_CONFIDENCE)

        rows.append(
            OutstandingVotes(
                state=label,
                state_code=label[:2],
                outstanding=outstanding,
                outstanding_percent=outstanding / expected * 100.0 if expected > 0 else 0.0,
                dem_lean=dem_lean,
                gop_lean=gop_lean,
                uncertain=outstanding - dem_lean - gop_lean,
                potential_swing=max(dem_lean, gop_lean),
                current_margin=bucket["gop"] - bucket["dem"],
                reporting_percent=reported / expected * 100.0 if expected > 0 else 0.0,
            )
        )

    rows.sort(key=lambda row: (-row["potential_swing"], row["state"]))
    return rows


def expected_totals_from(entities: Iterable[EntityMetadata]) -> dict[str, int]:
    """Expected vote total per fips for ``aggregate``."""
    totals: dict[str, int] = {}
    for entity in entities:
        fips = normalize_fips(entity.fips)
        if fips is not None:
            totals[fips] = max(0, entity.expected_total_votes)
    return totals
