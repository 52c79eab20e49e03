"""
Pytest configuration and shared fixtures.

Provides a small county catalog and reporting configurations that:
- Cover every geography and region the presets select on
- Keep expected vote totals round so preview counts are easy to check
- Never enable randomization unless a test asks for it
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from election_simulator.config.schemas import (
    GroupFilter,
    GroupRule,
    ReportingConfig,
    ReportingPattern,
)
from election_simulator.shared.data_contracts import EntityMetadata

BASE_TIMESTAMP = datetime(2024, 11, 5, 19, 0, tzinfo=timezone.utc)


@pytest.fixture
def entities() -> list[EntityMetadata]:
    """Four counties across three states, geographies and regions."""
    return [
        EntityMetadata(
            fips="1001", name="Autauga", state="AL", geography="urban",
            region="east", population=58_000, expected_total_votes=25_000,
            dem_share=0.40, gop_share=0.58,
        ),
        EntityMetadata(
            fips="01003", name="Baldwin", state="AL", geography="rural",
            region="midwest", population=230_000, expected_total_votes=100_000,
            dem_share=0.30, gop_share=0.68,
        ),
        EntityMetadata(
            fips="13001", name="Appling", state="GA", geography="suburban",
            region="sunbelt", population=18_000, expected_total_votes=8_000,
            dem_share=0.25, gop_share=0.74,
        ),
        EntityMetadata(
            fips="36061", name="New York", state="NY", geography="urban",
            region="east", population=1_600_000, expected_total_votes=700_000,
            dem_share=0.86, gop_share=0.12,
        ),
    ]


@pytest.fixture
def urban_rule_config() -> ReportingConfig:
    """One rule: urban counties ramp 15% -> 95% across [0, 540]."""
    return ReportingConfig(
        base_timestamp=BASE_TIMESTAMP,
        duration_seconds=1200,
        group_rules=[
            GroupRule(
                name="urban_early",
                filter=GroupFilter(geography="urban"),
                pattern=ReportingPattern(
                    start_seconds=0, end_seconds=540, initial_percent=15, final_percent=95
                ),
            )
        ],
    )


@pytest.fixture
def empty_config() -> ReportingConfig:
    """No rules and no overrides: every county follows the default ramp."""
    return ReportingConfig(base_timestamp=BASE_TIMESTAMP, duration_seconds=1200)
