"""Pydantic schemas for the reporting configuration document.

The document is exchanged as camelCase JSON with the editor and uploader UI.
Models accept either camelCase or snake_case keys and always dump camelCase.

These schemas enforce SHAPE only (types, enumerations). Invariants such as
``endSeconds >= startSeconds`` are checked by
``election_simulator.config.validation.validate`` so that a faulty document can
still be loaded, reported on and corrected.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from election_simulator.shared.data_contracts import EntityMetadata, normalize_fips

DEFAULT_DURATION_SECONDS = 1200.0
DEFAULT_JITTER_SECONDS = 300.0

ReportingMode = Literal["schedule", "manual", "batch"]
OrderKind = Literal["alphabetical", "reverse", "population"]

VALID_ORDERS: tuple[str, ...] = ("alphabetical", "reverse", "population")


class _DocumentModel(BaseModel):
    """Base for every document model: camelCase aliases, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ============================================================================
# Group Rules
# ============================================================================

class GroupFilter(_DocumentModel):
    """Entity selector for a group rule.

    All keys that are set must match. ``order`` does not exclude anyone: it
    matches every entity and staggers each one inside the rule window by its
    position in the ordering.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    geography: str | None = Field(None, description="rural, suburban or urban")
    region: str | None = Field(None, description="Region label, e.g. east or midwest")
    order: str | None = Field(None, description="alphabetical, reverse or population")

    @property
    def unknown_keys(self) -> list[str]:
        """Keys present in the document that no matcher understands."""
        return sorted((self.model_extra or {}).keys())

    @property
    def is_ordering(self) -> bool:
        return self.order is not None

    def matches(self, entity: EntityMetadata) -> bool:
        """Check whether ``entity`` is selected by this filter."""
        if self.geography is not None:
            if (entity.geography or "").lower() != self.geography.lower():
                return False
        if self.region is not None:
            if (entity.region or "").lower() != self.region.lower():
                return False
        return True


class ReportingPattern(_DocumentModel):
    """Linear ramp from initial_percent to final_percent across a window."""

    start_seconds: float = Field(..., description="Window start (simulation seconds)")
    end_seconds: float = Field(..., description="Window end (simulation seconds)")
    initial_percent: float = Field(..., description="Reporting percent at window start")
    final_percent: float = Field(..., description="Reporting percent at window end")


class GroupRule(_DocumentModel):
    """Filter plus linear pattern applied to every matching entity."""

    name: str = Field(..., description="Unique rule name")
    filter: GroupFilter = Field(default_factory=GroupFilter)  # type: ignore[arg-type]
    pattern: ReportingPattern


# ============================================================================
# County Overrides
# ============================================================================

class ReportingWave(_DocumentModel):
    """Timestamped target reporting percent for one county."""

    at_seconds: float = Field(..., description="Simulation time of this wave")
    percent: float = Field(..., description="Reporting percent reached at at_seconds")
    votes_dem: int | None = Field(None, description="Optional DEM vote override")
    votes_gop: int | None = Field(None, description="Optional GOP vote override")


class CountyReporting(_DocumentModel):
    """Per-county override. Takes precedence over every group rule."""

    fips: str = Field(..., description="Five-character county identifier")
    mode: ReportingMode = Field("schedule", description="schedule, manual or batch")
    reporting_waves: list[ReportingWave] = Field(default_factory=list)
    batch_group: str | None = Field(None, description="Counties sharing a group release together")
    batch_trigger_time: float | None = Field(None, description="Release time for batch mode")
    manual_trigger: bool = Field(False, description="Whether a manual county was released")

    @field_validator("fips", mode="before")
    @classmethod
    def normalize_fips_value(cls, v: Any) -> Any:
        """Pad identifiers to the fixed width."""
        normalized = normalize_fips(v)
        return v if normalized is None else normalized


# ============================================================================
# Randomization
# ============================================================================

class RandomizationConfig(_DocumentModel):
    """Deterministic jitter of wave timing."""

    enabled: bool = Field(False, description="Whether jitter is applied")
    jitter_seconds: float = Field(DEFAULT_JITTER_SECONDS, description="Maximum displacement in seconds")
    seed: int = Field(0, description="Seed for reproducible offsets")


# ============================================================================
# Root Document
# ============================================================================

def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ReportingConfig(_DocumentModel):
    """Complete reporting configuration."""

    version: str = Field("1.0", description="Document version")
    description: str | None = Field(None, description="Human-readable description")
    base_timestamp: datetime = Field(
        default_factory=_now_utc, description="Wall-clock anchor for simulation second 0"
    )
    duration_seconds: float = Field(
        DEFAULT_DURATION_SECONDS, description="Window used by the default ramp"
    )
    counties: list[CountyReporting] = Field(default_factory=list)
    group_rules: list[GroupRule] = Field(default_factory=list)
    randomization: RandomizationConfig = Field(default_factory=RandomizationConfig)  # type: ignore[arg-type]

    def override_for(self, fips: str) -> CountyReporting | None:
        """Return the override for ``fips``, if any (first one wins)."""
        normalized = normalize_fips(fips)
        for county in self.counties:
            if county.fips == normalized:
                return county
        return None

    def batch_trigger_time(self, override: CountyReporting) -> float | None:
        """Resolve the release time of a batch-mode override.

        Falls back to the earliest trigger among overrides that share its
        batch_group.
        """
        if override.batch_trigger_time is not None:
            return override.batch_trigger_time
        if override.batch_group is None:
            return None
        triggers = [
            county.batch_trigger_time
            for county in self.counties
            if county.batch_group == override.batch_group
            and county.batch_trigger_time is not None
        ]
        return min(triggers) if triggers else None

    def first_matching_rule(self, entity: EntityMetadata) -> GroupRule | None:
        """Return the first group rule whose filter selects ``entity``."""
        for rule in self.group_rules:
            if rule.filter.matches(entity):
                return rule
        return None

    def to_document(self) -> dict[str, Any]:
        """Dump as the camelCase JSON-compatible document."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> ReportingConfig:
        """Create config from dictionary."""
        return cls.model_validate(config_dict)
