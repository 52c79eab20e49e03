"""Tests for schedule resolution.

Covers the resolution order (manual, batch, waves, group rule, default ramp),
wave interpolation, ordering rules and deterministic jitter.
"""

from __future__ import annotations

import pytest

from election_simulator.config import (
    CountyReporting,
    GroupFilter,
    GroupRule,
    RandomizationConfig,
    ReportingConfig,
    ReportingPattern,
    ReportingWave,
)
from election_simulator.schedule import (
    ScheduleResolver,
    SeedManager,
    interpolate_waves,
    preview_votes,
    resolution_source,
    resolve_percent,
)
from election_simulator.shared.data_contracts import EntityMetadata

URBAN = EntityMetadata(fips="01001", name="Autauga", geography="urban", expected_total_votes=25_000)
RURAL = EntityMetadata(fips="01003", name="Baldwin", geography="rural", expected_total_votes=100_000)

WAVES = [
    ReportingWave(at_seconds=0, percent=0),
    ReportingWave(at_seconds=300, percent=35),
    ReportingWave(at_seconds=600, percent=70),
    ReportingWave(at_seconds=900, percent=90),
    ReportingWave(at_seconds=1200, percent=100),
]


def _with_override(config: ReportingConfig, **override: object) -> ReportingConfig:
    return config.model_copy(update={"counties": [CountyReporting(fips="01001", **override)]})


class TestWorkedExample:
    """The urban-first midpoint and default ramp end points."""

    def test_urban_midpoint_resolves_to_55(self, urban_rule_config: ReportingConfig) -> None:
        """15 + (95 - 15) * 0.5 at t=270 of a [0, 540] window."""
        assert resolve_percent(urban_rule_config, URBAN, 270) == pytest.approx(55.0)

    def test_unmatched_county_follows_default_ramp(self, urban_rule_config: ReportingConfig) -> None:
        """A rural county with no rule goes 0 -> 100 across the 1200 s window."""
        assert resolve_percent(urban_rule_config, RURAL, 0) == 0.0
        assert resolve_percent(urban_rule_config, RURAL, 600) == pytest.approx(50.0)
        assert resolve_percent(urban_rule_config, RURAL, 1200) == 100.0

    def test_rule_window_edges(self, urban_rule_config: ReportingConfig) -> None:
        """Flat at initial before the window and at final after it."""
        assert resolve_percent(urban_rule_config, URBAN, 0) == 15.0
        assert resolve_percent(urban_rule_config, URBAN, 540) == 95.0
        assert resolve_percent(urban_rule_config, URBAN, 5000) == 95.0

    def test_default_ramp_clamps(self, empty_config: ReportingConfig) -> None:
        """Times outside the window clamp to 0 and 100."""
        assert resolve_percent(empty_config, RURAL, -30) == 0.0
        assert resolve_percent(empty_config, RURAL, 4000) == 100.0

    def test_duration_argument_overrides_config(self, empty_config: ReportingConfig) -> None:
        """An explicit duration replaces the configured window."""
        assert resolve_percent(empty_config, RURAL, 300, duration_seconds=600) == pytest.approx(50.0)


class TestDeterminism:
    """Resolver output depends only on its inputs."""

    def test_repeated_calls_agree(self, urban_rule_config: ReportingConfig) -> None:
        """The same (config, entity, time) always gives the same percent."""
        for t in (0, 135.5, 270, 539, 900):
            assert resolve_percent(urban_rule_config, URBAN, t) == resolve_percent(
                urban_rule_config, URBAN, t
            )

    def test_first_matching_rule_wins(self) -> None:
        """Rules are tried in document order."""
        config = ReportingConfig(group_rules=[
            GroupRule(name="first", filter=GroupFilter(geography="urban"),
                      pattern=ReportingPattern(start_seconds=0, end_seconds=100,
                                               initial_percent=10, final_percent=10)),
            GroupRule(name="second", filter=GroupFilter(geography="urban"),
                      pattern=ReportingPattern(start_seconds=0, end_seconds=100,
                                               initial_percent=80, final_percent=80)),
        ])
        assert resolve_percent(config, URBAN, 50) == 10.0


class TestWaves:
    """Per-county wave tables."""

    def test_waves_round_trip(self, empty_config: ReportingConfig) -> None:
        """Each wave's own time resolves to exactly its percent."""
        config = _with_override(empty_config, reporting_waves=WAVES)
        for wave in WAVES:
            assert resolve_percent(config, URBAN, wave.at_seconds) == wave.percent

    def test_waves_are_monotonic(self, empty_config: ReportingConfig) -> None:
        """Resolved percent never decreases as time advances."""
        config = _with_override(empty_config, reporting_waves=WAVES)
        values = [resolve_percent(config, URBAN, t) for t in range(-60, 1500, 15)]
        assert values == sorted(values)

    def test_interpolates_between_waves(self, empty_config: ReportingConfig) -> None:
        """Halfway between 300 s (35%) and 600 s (70%) is 52.5%."""
        config = _with_override(empty_config, reporting_waves=WAVES)
        assert resolve_percent(config, URBAN, 450) == pytest.approx(52.5)

    def test_override_beats_group_rule(self, urban_rule_config: ReportingConfig) -> None:
        """A county override takes precedence over a matching rule."""
        config = _with_override(urban_rule_config, reporting_waves=WAVES)

        assert resolution_source(config, URBAN) == "waves"
        assert resolve_percent(config, URBAN, 300) == 35.0

    def test_unordered_table_is_sorted(self) -> None:
        """interpolate_waves sorts by time before interpolating."""
        shuffled = [WAVES[2], WAVES[0], WAVES[1]]
        assert interpolate_waves(shuffled, 150) == pytest.approx(17.5)
        assert interpolate_waves([], 150) is None

    def test_shared_time_uses_last_wave(self) -> None:
        """Several waves at one time resolve to the last of them."""
        waves = [
            ReportingWave(at_seconds=0, percent=0),
            ReportingWave(at_seconds=100, percent=20),
            ReportingWave(at_seconds=100, percent=60),
            ReportingWave(at_seconds=200, percent=80),
        ]
        assert interpolate_waves(waves, 100) == 60.0
        assert interpolate_waves(waves, 150) == pytest.approx(70.0)


class TestBatch:
    """All-or-nothing batch releases."""

    def test_zero_before_trigger_hundred_after(self, empty_config: ReportingConfig) -> None:
        """Exactly 0 strictly before the trigger, exactly 100 at and after it."""
        config = _with_override(empty_config, mode="batch", batch_trigger_time=420)

        assert resolve_percent(config, URBAN, 0) == 0.0
        assert resolve_percent(config, URBAN, 419.999) == 0.0
        assert resolve_percent(config, URBAN, 420) == 100.0
        assert resolve_percent(config, URBAN, 1200) == 100.0

    def test_batch_ignores_jitter(self, empty_config: ReportingConfig) -> None:
        """Randomization never moves a batch trigger."""
        config = _with_override(
            empty_config.model_copy(update={"randomization": RandomizationConfig(
                enabled=True, jitter_seconds=600, seed=3)}),
            mode="batch",
            batch_trigger_time=420,
        )
        assert resolve_percent(config, URBAN, 419) == 0.0
        assert resolve_percent(config, URBAN, 420) == 100.0

    def test_batch_without_trigger_stays_at_zero(self, empty_config: ReportingConfig) -> None:
        """An untriggerable batch county never reports."""
        config = _with_override(empty_config, mode="batch")
        assert resolve_percent(config, URBAN, 10_000) == 0.0


class TestManual:
    """Manually released counties."""

    def test_untriggered_manual_is_frozen(self, urban_rule_config: ReportingConfig) -> None:
        """An untriggered manual county holds its last known percent."""
        config = _with_override(urban_rule_config, mode="manual", reporting_waves=WAVES)

        assert resolve_percent(config, URBAN, 900) == 0.0
        assert resolve_percent(config, URBAN, 900, last_known_percent=42.0) == 42.0
        assert resolution_source(config, URBAN) == "manual"

    def test_resolver_trigger_releases_county(self, urban_rule_config: ReportingConfig) -> None:
        """Triggering switches the county onto its waves."""
        config = _with_override(urban_rule_config, mode="manual", reporting_waves=WAVES)
        resolver = ScheduleResolver(config, [URBAN, RURAL])
        resolver.set_last_known("1001", 12.0)

        assert resolver.resolve("01001", 600) == 12.0
        resolver.trigger_manual("01001")
        assert resolver.resolve("01001", 600) == 70.0
        assert config.counties[0].manual_trigger is False

    def test_triggered_without_waves_jumps_to_complete(self, empty_config: ReportingConfig) -> None:
        """A released manual county with no waves is fully reported."""
        config = _with_override(empty_config, mode="manual", manual_trigger=True)
        assert resolve_percent(config, URBAN, 1) == 100.0


class TestOrdering:
    """Ordering rules stagger counties inside one window."""

    def _config(self, order: str) -> ReportingConfig:
        return ReportingConfig(group_rules=[
            GroupRule(name="ordered", filter=GroupFilter(order=order),
                      pattern=ReportingPattern(start_seconds=0, end_seconds=1000,
                                               initial_percent=0, final_percent=100)),
        ])

    def test_alphabetical_order(self, entities: list[EntityMetadata]) -> None:
        """Earlier names start earlier, so report more at any time."""
        resolver = ScheduleResolver(self._config("alphabetical"), entities)
        at_800 = resolver.resolve_all(800)

        # Appling < Autauga < Baldwin < New York
        assert at_800["13001"] > at_800["01001"] > at_800["01003"] > at_800["36061"]
        assert resolver.entity("13001").order_position == 0.0
        assert resolver.entity("36061").order_position == 1.0

    def test_population_order(self, entities: list[EntityMetadata]) -> None:
        """The largest county starts first."""
        resolver = ScheduleResolver(self._config("population"), entities)
        assert resolver.entity("36061").order_position == 0.0
        assert resolver.resolve("36061", 500) > resolver.resolve("13001", 500)

    def test_every_county_completes(self, entities: list[EntityMetadata]) -> None:
        """All ordered counties reach the final percent at the window end."""
        resolver = ScheduleResolver(self._config("reverse"), entities)
        assert set(resolver.resolve_all(1000).values()) == {100.0}


class TestJitter:
    """Deterministic randomization."""

    def _config(self, seed: int, jitter: float = 300) -> ReportingConfig:
        return ReportingConfig(
            counties=[CountyReporting(fips="01001", reporting_waves=WAVES)],
            randomization=RandomizationConfig(enabled=True, jitter_seconds=jitter, seed=seed),
        )

    def test_same_seed_same_timeline(self) -> None:
        """Two resolutions with one seed agree exactly."""
        first = [resolve_percent(self._config(7), URBAN, t) for t in range(0, 1200, 50)]
        second = [resolve_percent(self._config(7), URBAN, t) for t in range(0, 1200, 50)]
        assert first == second

    def test_offset_within_bounds(self) -> None:
        """Offsets stay within ±jitter_seconds and vary by county."""
        manager = SeedManager(11)
        offsets = [manager.jitter_offset(f"{i:05d}", 300) for i in range(1, 200)]

        assert all(-300 <= offset <= 300 for offset in offsets)
        assert len(set(offsets)) > 1
        assert manager.jitter_offset("01001", 0) == 0.0

    def test_jitter_shifts_wave_times(self) -> None:
        """With jitter the wave is read at time + offset."""
        config = self._config(7)
        offset = SeedManager(7).jitter_offset("01001", 300)
        expected = interpolate_waves(WAVES, 450 + offset)

        assert resolve_percent(config, URBAN, 450) == pytest.approx(expected)

    def test_different_seeds_differ(self) -> None:
        """Different seeds produce different derived seeds."""
        assert SeedManager(1).derive_seed("jitter", "01001") != SeedManager(2).derive_seed(
            "jitter", "01001"
        )


class TestScheduleResolver:
    """Tests for the ScheduleResolver wrapper."""

    def test_unknown_county(self, empty_config: ReportingConfig) -> None:
        """Looking up a county outside the catalog raises KeyError."""
        with pytest.raises(KeyError):
            ScheduleResolver(empty_config, [URBAN]).resolve("99999", 0)

    def test_metadata_duration_override(self, empty_config: ReportingConfig) -> None:
        """A resolver-level duration replaces the configured default window."""
        resolver = ScheduleResolver(empty_config, [RURAL], duration_seconds=600)
        assert resolver.duration_seconds == 600
        assert resolver.resolve("01003", 300) == pytest.approx(50.0)

    def test_preview_votes_sum(self, urban_rule_config: ReportingConfig) -> None:
        """Preview counts always add up to the preview total."""
        resolver = ScheduleResolver(urban_rule_config, [URBAN, RURAL])
        preview = resolver.preview_votes("01001", 270)

        assert preview.total_votes == round(0.55 * 25_000)
        assert preview.dem_votes + preview.gop_votes + preview.other_votes == preview.total_votes

    def test_preview_votes_at_zero(self) -> None:
        """Nothing reported means no votes."""
        preview = preview_votes(URBAN, 0)
        assert (preview.dem_votes, preview.gop_votes, preview.total_votes) == (0, 0, 0)
