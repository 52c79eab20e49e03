"""Schedule resolution: simulation time -> reporting percent for one county.

``resolve_percent`` is a pure function of ``(config, entity, time)`` (plus
the configuration seed when randomization is enabled). Resolution order,
first match wins:

1. manual override not yet triggered -> last known percent (frozen)
2. batch override -> 0 before the trigger time, 100 at and after it
3. schedule override with waves -> piecewise-linear interpolation
4. first matching group rule -> linear ramp across the rule window
5. default ramp 0 -> 100 across the configured duration

Randomization displaces the effective time used by steps 3-5 by a
per-county offset derived from ``(seed, fips)``.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from election_simulator.config.schemas import (
    CountyReporting,
    GroupRule,
    ReportingConfig,
    ReportingWave,
)
from election_simulator.schedule.seed_manager import SeedManager
from election_simulator.shared.data_contracts import EntityMetadata, normalize_fips

logger = logging.getLogger(__name__)

ResolutionSource = Literal["manual", "batch", "waves", "group_rule", "default"]


def clamp_percent(value: float) -> float:
    """Clamp to the closed interval [0, 100]."""
    return max(0.0, min(100.0, float(value)))


def interpolate_waves(waves: Sequence[ReportingWave], t: float) -> float | None:
    """Piecewise-linear interpolation over a wave table.

    Flat before the first wave and after the last. At a time shared by
    several waves the last of them wins.

    Returns:
        Interpolated percent, or None for an empty table.
    """
    if not waves:
        return None
    ordered = sorted(waves, key=lambda w: w.at_seconds)
    times = [w.at_seconds for w in ordered]

    idx = bisect_right(times, t)
    if idx == 0:
        return clamp_percent(ordered[0].percent)
    if idx == len(ordered):
        return clamp_percent(ordered[-1].percent)

    lower = ordered[idx - 1]
    upper = ordered[idx]
    if t == lower.at_seconds:
        return clamp_percent(lower.percent)
    fraction = (t - lower.at_seconds) / (upper.at_seconds - lower.at_seconds)
    return clamp_percent(lower.percent + (upper.percent - lower.percent) * fraction)


def ramp_percent(rule: GroupRule, t: float, order_position: float | None = None) -> float:
    """Linear ramp ``initial -> final`` across the rule window.

    With an ``order`` filter the ramp for one county starts at
    ``start + order_position * (end - start)`` instead of ``start``.
    """
    pattern = rule.pattern
    start = pattern.start_seconds
    end = pattern.end_seconds
    if rule.filter.is_ordering and order_position is not None:
        start = start + max(0.0, min(1.0, order_position)) * (end - start)

    if t <= start and t < end:
        return clamp_percent(pattern.initial_percent)
    if t >= end:
        return clamp_percent(pattern.final_percent)
    fraction = (t - start) / (end - start)
    return clamp_percent(
        pattern.initial_percent + (pattern.final_percent - pattern.initial_percent) * fraction
    )


def default_ramp_percent(t: float, duration_seconds: float) -> float:
    """Linear 0 -> 100 across ``[0, duration_seconds]``."""
    if duration_seconds <= 0:
        return 100.0 if t >= 0 else 0.0
    return clamp_percent(100.0 * t / duration_seconds)


def resolution_source(config: ReportingConfig, entity: EntityMetadata) -> ResolutionSource:
    """Which resolution step applies to ``entity`` (ignoring time)."""
    override = config.override_for(entity.fips)
    if override is not None:
        if override.mode == "manual":
            return "manual"
        if override.mode == "batch":
            return "batch"
        if override.reporting_waves:
            return "waves"
    if config.first_matching_rule(entity) is not None:
        return "group_rule"
    return "default"


def effective_time(config: ReportingConfig, fips: str, t: float) -> float:
    """Simulation time after the per-county jitter displacement."""
    randomization = config.randomization
    if not randomization.enabled:
        return t
    offset = SeedManager(randomization.seed).jitter_offset(fips, randomization.jitter_seconds)
    return t + offset


def resolve_percent(
    config: ReportingConfig,
    entity: EntityMetadata,
    simulation_time_seconds: float,
    *,
    last_known_percent: float = 0.0,
    duration_seconds: float | None = None,
) -> float:
    """Resolve the reporting percent of one county at one simulation time.

    Args:
        config: Reporting configuration.
        entity: County metadata.
        simulation_time_seconds: Seconds since the simulation started.
        last_known_percent: Frozen percent for an untriggered manual county.
        duration_seconds: Window for the default ramp; defaults to
            ``config.duration_seconds``.

    Returns:
        Reporting percent in [0, 100].
    """
    t = simulation_time_seconds
    override: CountyReporting | None = config.override_for(entity.fips)

    if override is not None and override.mode == "manual":
        if not override.manual_trigger:
            return clamp_percent(last_known_percent)
        released = interpolate_waves(override.reporting_waves, t)
        return 100.0 if released is None else released

    if override is not None and override.mode == "batch":
        trigger = config.batch_trigger_time(override)
        if trigger is None:
            return 0.0
        return 100.0 if t >= trigger else 0.0

    t_eff = effective_time(config, entity.fips, t)

    if override is not None and override.reporting_waves:
        waves_percent = interpolate_waves(override.reporting_waves, t_eff)
        if waves_percent is not None:
            return waves_percent

    rule = config.first_matching_rule(entity)
    if rule is not None:
        return ramp_percent(rule, t_eff, entity.order_position)

    duration = config.duration_seconds if duration_seconds is None else duration_seconds
    return default_ramp_percent(t_eff, duration)


@dataclass(frozen=True)
class VotePreview:
    """Advisory vote counts for a resolved reporting percent.

    Never ground truth: live counts come only from server frames.
    """

    fips: str
    reporting_percent: float
    dem_votes: int
    gop_votes: int
    other_votes: int
    total_votes: int


def preview_votes(entity: EntityMetadata, reporting_percent: float) -> VotePreview:
    """Scale the county's expected vote total by a reporting percent.

    dem and gop follow the county's party-share baseline; other takes the
    rest, so the three always sum to the total.
    """
    percent = clamp_percent(reporting_percent)
    total = round(percent / 100.0 * max(0, entity.expected_total_votes))
    dem = min(total, round(total * max(0.0, min(1.0, entity.dem_share))))
    gop = min(total - dem, round(total * max(0.0, min(1.0, entity.gop_share))))
    return VotePreview(
        fips=entity.fips,
        reporting_percent=percent,
        dem_votes=dem,
        gop_votes=gop,
        other_votes=total - dem - gop,
        total_votes=total,
    )


def order_positions(entities: Sequence[EntityMetadata], order: str) -> dict[str, float]:
    """Position of each county in ``[0, 1]`` under an ordering.

    alphabetical and reverse sort by name (then fips); population sorts
    largest first.
    """
    if order == "population":
        ranked = sorted(entities, key=lambda e: (-e.population, e.fips))
    else:
        ranked = sorted(entities, key=lambda e: (e.name.lower(), e.fips))
        if order == "reverse":
            ranked.reverse()

    if len(ranked) <= 1:
        return {e.fips: 0.0 for e in ranked}
    last = len(ranked) - 1
    return {e.fips: i / last for i, e in enumerate(ranked)}


class ScheduleResolver:
    """Resolver bound to one configuration and one county catalog.

    Assigns ordering positions for ``order`` rules, remembers the last known
    percent of manual counties and releases them on request.

    Example:
        >>> resolver = ScheduleResolver(config, entities)
        >>> resolver.resolve("01001", 270.0)
        55.0
    """

    def __init__(
        self,
        config: ReportingConfig,
        entities: Iterable[EntityMetadata],
        duration_seconds: float | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            config: Reporting configuration.
            entities: County catalog.
            duration_seconds: Default-ramp window override (e.g. from server metadata).
        """
        self._config = config
        self._duration_seconds = duration_seconds
        self._last_known: dict[str, float] = {}
        self._entities = self._assign_order_positions(list(entities))
        logger.debug(
            f"ScheduleResolver ready: {len(self._entities)} counties, "
            f"{len(config.group_rules)} group rules, {len(config.counties)} overrides"
        )

    @property
    def config(self) -> ReportingConfig:
        return self._config

    @property
    def duration_seconds(self) -> float:
        if self._duration_seconds is not None:
            return self._duration_seconds
        return self._config.duration_seconds

    @property
    def entities(self) -> list[EntityMetadata]:
        return list(self._entities.values())

    def entity(self, fips: str) -> EntityMetadata:
        """Look up a county.

        Raises:
            KeyError: If the county is not in the catalog
        """
        normalized = normalize_fips(fips)
        if normalized is None or normalized not in self._entities:
            raise KeyError(f"Unknown county: {fips}")
        return self._entities[normalized]

    def set_last_known(self, fips: str, percent: float) -> None:
        """Record the percent a manual county stays frozen at."""
        self._last_known[self.entity(fips).fips] = clamp_percent(percent)

    def trigger_manual(self, fips: str) -> None:
        """Release a manual county so it follows its waves (or jumps to 100)."""
        normalized = self.entity(fips).fips
        counties = [
            county.model_copy(update={"manual_trigger": True})
            if county.fips == normalized and county.mode == "manual"
            else county
            for county in self._config.counties
        ]
        self._config = self._config.model_copy(update={"counties": counties})

    def resolve(self, fips: str, simulation_time_seconds: float) -> float:
        entity = self.entity(fips)
        return resolve_percent(
            self._config,
            entity,
            simulation_time_seconds,
            last_known_percent=self._last_known.get(entity.fips, 0.0),
            duration_seconds=self.duration_seconds,
        )

    def resolve_all(self, simulation_time_seconds: float) -> dict[str, float]:
        return {fips: self.resolve(fips, simulation_time_seconds) for fips in self._entities}

    def preview_votes(self, fips: str, simulation_time_seconds: float) -> VotePreview:
        return preview_votes(self.entity(fips), self.resolve(fips, simulation_time_seconds))

    def _assign_order_positions(
        self, entities: list[EntityMetadata]
    ) -> dict[str, EntityMetadata]:
        cohorts: dict[str, list[EntityMetadata]] = {}
        for entity in entities:
            rule = self._config.first_matching_rule(entity)
            if rule is not None and rule.filter.is_ordering:
                cohorts.setdefault(rule.name, []).append(entity)

        positions: dict[str, float] = {}
        for rule in self._config.group_rules:
            cohort = cohorts.get(rule.name)
            if cohort and rule.filter.order is not None:
                positions.update(order_positions(cohort, rule.filter.order.lower()))

        return {
            entity.fips: entity.with_order_position(positions.get(entity.fips, entity.order_position))
            for entity in entities
        }
