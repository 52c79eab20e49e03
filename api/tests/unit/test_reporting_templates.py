"""Tests for reporting presets, default overrides and partial merges."""

from __future__ import annotations

import pytest

from election_simulator.config import (
    DEFAULT_WAVES,
    TEMPLATE_DESCRIPTIONS,
    TEMPLATE_KEYS,
    ReportingConfig,
    add_county_override,
    build_pattern,
    default_override,
    describe_template,
    merge,
    validate,
)
from election_simulator.config.schemas import RandomizationConfig
from election_simulator.config.templates import normalize_template_key


class TestBuildPattern:
    """Tests for build_pattern."""

    def test_urban_first_windows(self, empty_config: ReportingConfig) -> None:
        """urban-first schedules cities early and rural counties late."""
        config = build_pattern("urban-first", empty_config)
        rules = {rule.name: rule for rule in config.group_rules}

        assert set(rules) == {"urban_early", "rural_late"}
        assert rules["urban_early"].filter.geography == "urban"
        assert rules["urban_early"].pattern.start_seconds == 0
        assert rules["urban_early"].pattern.end_seconds == 540
        assert rules["urban_early"].pattern.initial_percent == 15
        assert rules["urban_early"].pattern.final_percent == 95
        assert config.description == "Template applied: URBAN_FIRST"

    @pytest.mark.parametrize("key", TEMPLATE_KEYS)
    def test_every_preset_is_valid(self, key: str, empty_config: ReportingConfig) -> None:
        """Each preset passes invariant validation."""
        result = validate(build_pattern(key, empty_config))
        assert result.is_valid, result.errors

    def test_alphabetical_uses_order_filter(self, empty_config: ReportingConfig) -> None:
        """The alphabetical preset is a single ordering rule."""
        config = build_pattern("alphabetical", empty_config)

        assert len(config.group_rules) == 1
        assert config.group_rules[0].filter.order == "alphabetical"

    def test_randomized_enables_jitter_and_keeps_seed(self) -> None:
        """randomized switches jitter on without changing the seed."""
        base = ReportingConfig(randomization=RandomizationConfig(seed=99))
        config = build_pattern("RANDOMIZED", base)

        assert config.randomization.enabled is True
        assert config.randomization.jitter_seconds == 600
        assert config.randomization.seed == 99
        assert config.group_rules == []

    def test_random_alias(self, empty_config: ReportingConfig) -> None:
        """RANDOM is accepted as an alias of RANDOMIZED."""
        assert build_pattern("random", empty_config).randomization.enabled is True

    def test_presets_clear_overrides(self, empty_config: ReportingConfig) -> None:
        """Applying a preset drops existing county overrides."""
        with_override = add_county_override(empty_config, "01001")
        assert build_pattern("mixed", with_override).counties == []

    def test_unknown_key_returns_base_unchanged(self, empty_config: ReportingConfig) -> None:
        """An unknown key is a no-op, not an error."""
        assert build_pattern("chaotic", empty_config) is empty_config
        assert build_pattern(None, empty_config) is empty_config

    def test_base_is_not_mutated(self, empty_config: ReportingConfig) -> None:
        """The base configuration keeps its rules."""
        build_pattern("regional", empty_config)
        assert empty_config.group_rules == []

    def test_preserves_base_settings(self, empty_config: ReportingConfig) -> None:
        """Version, timestamp and duration come from the base."""
        config = build_pattern("rural_first", empty_config)

        assert config.base_timestamp == empty_config.base_timestamp
        assert config.duration_seconds == empty_config.duration_seconds

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("urban-first", "URBAN_FIRST"), ("Rural_First", "RURAL_FIRST"), ("nope", None), ("", None)],
    )
    def test_normalize_template_key(self, raw: str, expected: str | None) -> None:
        """Keys are case and separator insensitive."""
        assert normalize_template_key(raw) == expected

    def test_every_preset_has_a_description(self) -> None:
        """Each preset key carries a one-line blurb."""
        assert set(TEMPLATE_DESCRIPTIONS) == set(TEMPLATE_KEYS)
        assert all(TEMPLATE_DESCRIPTIONS[key] for key in TEMPLATE_KEYS)

    def test_describe_template(self) -> None:
        """Descriptions are looked up through the normalized key."""
        assert describe_template("regional") == "East to Midwest to Sun Belt regional waves."
        assert describe_template("random") == TEMPLATE_DESCRIPTIONS["RANDOMIZED"]
        assert describe_template("nope") is None


class TestDefaultOverrides:
    """Tests for default county overrides."""

    def test_default_override_waves(self) -> None:
        """A new override follows the default five-wave schedule."""
        override = default_override("1001")

        assert override.fips == "01001"
        assert override.mode == "schedule"
        assert [(w.at_seconds, w.percent) for w in override.reporting_waves] == [
            (float(at), float(pct)) for at, pct in DEFAULT_WAVES
        ]

    def test_add_county_override_is_idempotent(self, empty_config: ReportingConfig) -> None:
        """Adding the same county twice keeps one override."""
        once = add_county_override(empty_config, "01001")
        twice = add_county_override(once, "1001")

        assert len(once.counties) == 1
        assert twice is once
        assert empty_config.counties == []


class TestMerge:
    """Tests for merge."""

    def test_nested_keys_merge(self, empty_config: ReportingConfig) -> None:
        """Nested mappings merge key by key."""
        merged = merge(empty_config, {"randomization": {"enabled": True}})

        assert merged.randomization.enabled is True
        assert merged.randomization.jitter_seconds == empty_config.randomization.jitter_seconds

    def test_lists_are_replaced(self, urban_rule_config: ReportingConfig) -> None:
        """A patched list replaces the original list."""
        merged = merge(urban_rule_config, {"groupRules": []})
        assert merged.group_rules == []

    def test_snake_case_patch_keys(self, empty_config: ReportingConfig) -> None:
        """Patch keys may use field names."""
        merged = merge(empty_config, {"duration_seconds": 900, "randomization": {"jitter_seconds": 60}})

        assert merged.duration_seconds == 900
        assert merged.randomization.jitter_seconds == 60

    def test_base_is_not_mutated(self, urban_rule_config: ReportingConfig) -> None:
        """merge returns a new configuration."""
        merge(urban_rule_config, {"description": "changed", "groupRules": []})

        assert urban_rule_config.description is None
        assert len(urban_rule_config.group_rules) == 1

    def test_malformed_patch_raises_value_error(self, empty_config: ReportingConfig) -> None:
        """A patch that breaks the document shape is rejected."""
        with pytest.raises(ValueError, match="Invalid configuration patch"):
            merge(empty_config, {"durationSeconds": "soon"})
