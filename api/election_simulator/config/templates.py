"""Named reporting presets and default county overrides.

Each preset replaces the group rules of a base configuration with a fixed set
of windows. Presets clear county overrides and reset randomization to its
disabled default, except ``randomized`` which switches jitter on.
"""

from __future__ import annotations

import logging

from election_simulator.config.schemas import (
    CountyReporting,
    GroupFilter,
    GroupRule,
    RandomizationConfig,
    ReportingConfig,
    ReportingPattern,
    ReportingWave,
)
from election_simulator.shared.data_contracts import normalize_fips

logger = logging.getLogger(__name__)

URBAN_FIRST = "URBAN_FIRST"
RURAL_FIRST = "RURAL_FIRST"
MIXED = "MIXED"
ALPHABETICAL = "ALPHABETICAL"
REGIONAL = "REGIONAL"
RANDOMIZED = "RANDOMIZED"

TEMPLATE_KEYS: tuple[str, ...] = (
    URBAN_FIRST,
    RURAL_FIRST,
    MIXED,
    ALPHABETICAL,
    REGIONAL,
    RANDOMIZED,
)

TEMPLATE_DESCRIPTIONS: dict[str, str] = {
    URBAN_FIRST: "Cities move early, rural counties trail the close.",
    RURAL_FIRST: "Rural precincts lead the night with metro closing later.",
    MIXED: "Each geography gets a staggered wave across the night.",
    ALPHABETICAL: "Counties report in alphabetical batches across the timeline.",
    REGIONAL: "East to Midwest to Sun Belt regional waves.",
    RANDOMIZED: "Enable jittered reporting for more organic pacing.",
}

_ALIASES = {"RANDOM": RANDOMIZED}

RANDOMIZED_JITTER_SECONDS = 600.0

DEFAULT_WAVES: tuple[tuple[float, float], ...] = (
    (0, 0),
    (300, 35),
    (600, 70),
    (900, 90),
    (1200, 100),
)


def _rule(name: str, start: float, end: float, initial: float, final: float, **flt: str) -> GroupRule:
    return GroupRule(
        name=name,
        filter=GroupFilter(**flt),
        pattern=ReportingPattern(
            start_seconds=start,
            end_seconds=end,
            initial_percent=initial,
            final_percent=final,
        ),
    )


_PRESET_RULES: dict[str, list[GroupRule]] = {
    URBAN_FIRST: [
        _rule("urban_early", 0, 540, 15, 95, geography="urban"),
        _rule("rural_late", 360, 1200, 5, 92, geography="rural"),
    ],
    RURAL_FIRST: [
        _rule("rural_early", 0, 540, 15, 96, geography="rural"),
        _rule("urban_late", 480, 1200, 5, 98, geography="urban"),
    ],
    MIXED: [
        _rule("metro_first_wave", 0, 420, 12, 85, geography="urban"),
        _rule("suburban_middle", 240, 900, 18, 95, geography="suburban"),
        _rule("rural_close", 540, 1200, 10, 96, geography="rural"),
    ],
    ALPHABETICAL: [
        _rule("alphabetical_wave", 0, 1200, 5, 100, order="alphabetical"),
    ],
    REGIONAL: [
        _rule("east_coast", 0, 540, 20, 90, region="east"),
        _rule("midwest", 180, 900, 10, 95, region="midwest"),
        _rule("sunbelt", 480, 1200, 8, 98, region="sunbelt"),
    ],
    RANDOMIZED: [],
}


def normalize_template_key(template_key: str | None) -> str | None:
    """Map ``urban-first``, ``Urban_First`` or ``URBAN_FIRST`` to the canonical key."""
    if not template_key:
        return None
    key = template_key.strip().upper().replace("-", "_").replace(" ", "_")
    key = _ALIASES.get(key, key)
    return key if key in _PRESET_RULES else None


def describe_template(template_key: str | None) -> str | None:
    """One-line description of a preset, or None for an unknown key."""
    key = normalize_template_key(template_key)
    return TEMPLATE_DESCRIPTIONS[key] if key is not None else None


def build_pattern(template_key: str | None, base: ReportingConfig) -> ReportingConfig:
    """Build a preset configuration on top of ``base``.

    Args:
        template_key: One of urban-first, rural-first, mixed, alphabetical,
            regional, randomized (case and separator insensitive).
        base: Configuration providing version, timestamp and duration.

    Returns:
        The preset configuration, or ``base`` itself for an unknown key.
    """
    key = normalize_template_key(template_key)
    if key is None:
        logger.debug(f"Unknown reporting template {template_key!r}; configuration unchanged")
        return base

    randomization = RandomizationConfig()
    if key == RANDOMIZED:
        randomization = RandomizationConfig(
            enabled=True,
            jitter_seconds=RANDOMIZED_JITTER_SECONDS,
            seed=base.randomization.seed,
        )

    return base.model_copy(
        update={
            "description": f"Template applied: {key}",
            "counties": [],
            "group_rules": list(_PRESET_RULES[key]),
            "randomization": randomization,
        }
    )


def default_waves() -> list[ReportingWave]:
    """Fresh copy of the default five-wave schedule."""
    return [ReportingWave(at_seconds=at, percent=pct) for at, pct in DEFAULT_WAVES]


def default_override(fips: str) -> CountyReporting:
    """Schedule-mode override with the default waves for one county."""
    normalized = normalize_fips(fips)
    if normalized is None:
        raise ValueError("default_override requires a fips")
    return CountyReporting(fips=normalized, mode="schedule", reporting_waves=default_waves())


def add_county_override(base: ReportingConfig, fips: str) -> ReportingConfig:
    """Return ``base`` with a default override for ``fips`` appended.

    A county that already has an override is left as it is.
    """
    if base.override_for(fips) is not None:
        return base
    return base.model_copy(update={"counties": [*base.counties, default_override(fips)]})
