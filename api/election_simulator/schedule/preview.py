"""Offline preview streams built from the schedule resolver.

Produces envelopes in the same wire shape the simulation server sends, so a
timeline can be previewed (or replayed in tests) through the regular
envelope reconciler without a server.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from election_simulator.schedule.resolver import ScheduleResolver


def _envelope(envelope_type: str, payload: dict[str, Any], session_id: str | None) -> dict[str, Any]:
    envelope: dict[str, Any] = {"type": envelope_type, "payload": payload}
    if session_id is not None:
        envelope["sessionId"] = session_id
    return envelope


def build_preview_frame(
    resolver: ScheduleResolver,
    simulation_time_seconds: float,
    session_id: str | None = None,
) -> dict[str, Any]:
    """Build one ``frame`` envelope for every county at one simulation time.

    Args:
        resolver: Resolver bound to the configuration and county catalog.
        simulation_time_seconds: Time to resolve.
        session_id: Optional session tag.

    Returns:
        Envelope dict with per-county votes and national totals.
    """
    counties: list[dict[str, Any]] = []
    dem_total = 0
    gop_total = 0
    reporting = 0

    for entity in resolver.entities:
        preview = resolver.preview_votes(entity.fips, simulation_time_seconds)
        dem_total += preview.dem_votes
        gop_total += preview.gop_votes
        if preview.reporting_percent > 0:
            reporting += 1
        counties.append({
            "fips": preview.fips,
            "demVotes": preview.dem_votes,
            "gopVotes": preview.gop_votes,
            "totalVotes": preview.total_votes,
            "reportingPercent": preview.reporting_percent,
        })

    duration = resolver.duration_seconds
    progress = 100.0 if duration <= 0 else min(100.0, max(0.0, simulation_time_seconds / duration * 100.0))

    return _envelope(
        "frame",
        {
            "simulationTimeSeconds": simulation_time_seconds,
            "progressPercent": progress,
            "countiesReporting": reporting,
            "countiesTotal": len(counties),
            "demVotes": dem_total,
            "repVotes": gop_total,
            "counties": counties,
        },
        session_id,
    )


def iter_preview_envelopes(
    resolver: ScheduleResolver,
    step_seconds: float = 60.0,
    session_id: str | None = None,
) -> Iterator[dict[str, Any]]:
    """Yield a metadata envelope, frames across the window, then ``completed``.

    Frames are emitted at ``0, step, 2*step, ...`` and always at the end of
    the window, in non-decreasing time order.

    Raises:
        ValueError: If step_seconds is not positive
    """
    if step_seconds <= 0:
        raise ValueError("step_seconds must be > 0")

    duration = resolver.duration_seconds
    times: list[float] = []
    t = 0.0
    while t < duration:
        times.append(t)
        t += step_seconds
    times.append(duration)

    yield _envelope(
        "metadata",
        {
            "totalDurationSeconds": duration,
            "resolvedTotalFrames": len(times),
            "countiesTotal": len(resolver.entities),
            "dynamicFrameTimeline": False,
        },
        session_id,
    )
    for frame_time in times:
        yield build_preview_frame(resolver, frame_time, session_id)
    yield _envelope(
        "completed",
        {
            "totalFrames": len(times),
            "durationSeconds": duration,
            "countiesTotal": len(resolver.entities),
        },
        session_id,
    )
