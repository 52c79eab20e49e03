"""Schedule resolution: deterministic reporting timelines from a configuration."""
from election_simulator.schedule.preview import build_preview_frame, iter_preview_envelopes
from election_simulator.schedule.resolver import (
    ScheduleResolver,
    VotePreview,
    clamp_percent,
    interpolate_waves,
    preview_votes,
    resolution_source,
    resolve_percent,
)
from election_simulator.schedule.seed_manager import SeedManager

__all__ = [
    "ScheduleResolver",
    "SeedManager",
    "VotePreview",
    "build_preview_frame",
    "clamp_percent",
    "interpolate_waves",
    "iter_preview_envelopes",
    "preview_votes",
    "resolution_source",
    "resolve_percent",
]
