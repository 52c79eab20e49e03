"""Envelope reconciler: applies inbound server messages to the state store.

Message handling:
    metadata    Simulation-wide bounds; later values win.
    frame/delta Sole authority for vote counts and reporting percent. Each
                listed county's record is replaced whole. Frames are assumed
                to arrive in non-decreasing simulation time, so no staleness
                check is applied to them. Inline demographics replace the
                county's breakdown but never touch the enrichment ledger.
    enrichment  Demographics for one county. Rejected when its vote total is
                below the one already accepted for that county.
    completed   Terminal. Later frames/deltas are dropped.
    error       Terminal. Everything is dropped until the session is reset.
    newsroom    Newest-first narrative feed, capped at NEWSROOM_CAPACITY.
    (unknown)   Logged and ignored.

``apply`` never raises: every outcome is returned as an ApplyResult and
logged.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Literal

from election_simulator.schedule.resolver import clamp_percent
from election_simulator.shared.data_contracts import CountySimulationState
from election_simulator.shared.errors import VoteSumError
from election_simulator.streaming.envelopes import (
    CompletedEnvelope,
    EnrichmentEnvelope,
    Envelope,
    ErrorEnvelope,
    FrameEnvelope,
    MetadataEnvelope,
    NewsroomEnvelope,
    UnknownEnvelope,
    decode_envelope,
)
from election_simulator.streaming.store import StreamingStateStore

logger = logging.getLogger(__name__)

NEWSROOM_CAPACITY = 60

SessionStatus = Literal["idle", "running", "completed", "error"]
Outcome = Literal["applied", "ignored", "stale", "dropped", "rejected", "fatal"]


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of applying one envelope.

    Attributes:
        outcome: applied, ignored (no-op), stale (enrichment older than the
            ledger), dropped (session terminal), rejected (undecodable) or
            fatal (the envelope halted the session)
        envelope_type: The envelope's type, if it could be read
        detail: Human-readable reason
    """

    outcome: Outcome
    envelope_type: str | None = None
    detail: str = ""

    @property
    def changed_state(self) -> bool:
        return self.outcome in ("applied", "fatal")


@dataclass(frozen=True)
class SimulationProgress:
    """Session-wide playback and reporting counters."""

    simulation_time_seconds: float = 0.0
    progress_percent: float = 0.0
    counties_reporting: int = 0
    counties_total: int = 0
    total_duration_seconds: float = 0.0
    resolved_total_frames: int = 0
    dynamic_frame_timeline: bool = False
    national_margin: float = 0.0

    @property
    def is_ready(self) -> bool:
        return self.total_duration_seconds > 0 or self.resolved_total_frames > 0


@dataclass(frozen=True)
class NewsroomEvent:
    """One narrative event. Informational only."""

    id: str
    type: str
    headline: str
    simulation_time_seconds: float
    severity: str
    timestamp: str
    detail: str | None = None
    state: str | None = None
    state_fips: str | None = None
    margin: float | None = None
    reporting_percent: float | None = None


class EnvelopeReconciler:
    """Applies envelopes, in arrival order, to one StreamingStateStore.

    Example:
        >>> reconciler = EnvelopeReconciler(StreamingStateStore())
        >>> reconciler.apply({"type": "frame", "payload": {"counties": [
        ...     {"fips": "1001", "demVotes": 10, "gopVotes": 12, "totalVotes": 25,
        ...      "reportingPercent": 5}]}}).outcome
        'applied'
    """

    def __init__(self, store: StreamingStateStore) -> None:
        """Initialize the reconciler.

        Args:
            store: Store this reconciler is the single writer of
        """
        self._store = store
        self._status: SessionStatus = "idle"
        self._error: str | None = None
        self._progress = SimulationProgress()
        self._newsroom: deque[NewsroomEvent] = deque(maxlen=NEWSROOM_CAPACITY)

    @property
    def store(self) -> StreamingStateStore:
        return self._store

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def error(self) -> str | None:
        """Message of the fatal condition that halted the session, if any."""
        return self._error

    @property
    def is_halted(self) -> bool:
        return self._status == "error"

    @property
    def is_completed(self) -> bool:
        return self._status == "completed"

    @property
    def progress(self) -> SimulationProgress:
        return self._progress

    @property
    def newsroom_events(self) -> list[NewsroomEvent]:
        """Newest first."""
        return list(self._newsroom)

    def apply(self, raw: str | bytes | Mapping[str, Any] | Envelope) -> ApplyResult:
        """Decode and apply one inbound message.

        Args:
            raw: JSON text/bytes, a parsed mapping or an already decoded envelope

        Returns:
            ApplyResult describing what happened
        """
        try:
            envelope = decode_envelope(raw)
            if envelope is None:
                return ApplyResult("rejected", None, "envelope could not be decoded")

            if self.is_halted:
                logger.info(
                    f"Dropping {envelope.type!r} envelope: session halted by error ({self._error})"
                )
                return ApplyResult("dropped", envelope.type, "session halted")

            match envelope:
                case FrameEnvelope():
                    return self._apply_frame(envelope)
                case MetadataEnvelope():
                    return self._apply_metadata(envelope)
                case EnrichmentEnvelope():
                    return self._apply_enrichment(envelope)
                case CompletedEnvelope():
                    return self._apply_completed(envelope)
                case ErrorEnvelope():
                    return self._apply_error(envelope)
                case NewsroomEnvelope():
                    return self._apply_newsroom(envelope)
                case UnknownEnvelope():
                    logger.warning(f"Unrecognized envelope type {envelope.type!r} ignored")
                    return ApplyResult("ignored", envelope.type, "unrecognized type")
                case _:
                    logger.warning(f"Unsupported envelope object {type(envelope).__name__} ignored")
                    return ApplyResult("ignored", None, "unsupported envelope object")
        except Exception as e:
            logger.exception(f"Envelope could not be applied: {e}")
            return ApplyResult("rejected", None, f"internal error: {e}")

    def halt(self, message: str) -> None:
        """Mark the session as failed. Every later envelope is dropped."""
        self._status = "error"
        self._error = message
        logger.error(f"Simulation session halted: {message}")

    def _mark_running(self) -> None:
        if self._status == "idle":
            self._status = "running"

    def _apply_frame(self, envelope: FrameEnvelope) -> ApplyResult:
        if self.is_completed:
            logger.info(f"Late {envelope.type} envelope dropped: session already completed")
            return ApplyResult("dropped", envelope.type, "session completed")

        payload = envelope.payload
        staged: list[tuple[str, CountySimulationState]] = []
        inline_demographics: dict[str, dict[str, Any]] = {}
        skipped = 0

        try:
            for county in payload.counties:
                if county.fips is None:
                    skipped += 1
                    continue
                previous = self._store.get(county.fips)
                dem = county.dem_votes if county.dem_votes is not None else (
                    previous.current_dem_votes if previous else 0
                )
                gop = county.gop_votes if county.gop_votes is not None else (
                    previous.current_gop_votes if previous else 0
                )
                if county.total_votes is not None:
                    total = county.total_votes
                else:
                    total = dem + gop + (previous.current_other_votes if previous else 0)
                percent = county.reporting_percent if county.reporting_percent is not None else (
                    previous.current_reporting_percent if previous else 0.0
                )

                state = CountySimulationState.from_votes(
                    fips=county.fips,
                    dem_votes=dem,
                    gop_votes=gop,
                    total_votes=total,
                    reporting_percent=clamp_percent(percent),
                )
                staged.append((state.fips, state))
                if county.demographics:
                    inline_demographics[state.fips] = county.demographics
        except VoteSumError as e:
            self.halt(f"inconsistent vote counts in {envelope.type}: {e}")
            return ApplyResult("fatal", envelope.type, str(e))

        self._store.upsert_many(staged, inline_demographics)

        if skipped:
            logger.warning(f"{envelope.type} envelope: skipped {skipped} county update(s) without fips")
        if not staged:
            logger.warning(f"{envelope.type} envelope carried no county updates")

        self._progress = self._progress_after_frame(envelope)
        self._mark_running()
        return ApplyResult("applied", envelope.type, f"{len(staged)} county record(s) replaced")

    def _progress_after_frame(self, envelope: FrameEnvelope) -> SimulationProgress:
        payload = envelope.payload
        progress = self._progress
        updates: dict[str, Any] = {}
        if payload.simulation_time_seconds is not None:
            updates["simulation_time_seconds"] = payload.simulation_time_seconds
        if payload.progress_percent is not None:
            updates["progress_percent"] = payload.progress_percent
        if payload.counties_reporting is not None:
            updates["counties_reporting"] = payload.counties_reporting
        if payload.counties_total is not None:
            updates["counties_total"] = payload.counties_total
        if payload.dem_votes is not None and payload.rep_votes is not None:
            total = payload.dem_votes + payload.rep_votes
            updates["national_margin"] = (
                (payload.rep_votes - payload.dem_votes) / total * 100.0 if total > 0 else 0.0
            )
        return replace(progress, **updates)

    def _apply_metadata(self, envelope: MetadataEnvelope) -> ApplyResult:
        payload = envelope.payload
        updates: dict[str, Any] = {}
        if payload.total_duration_seconds is not None:
            updates["total_duration_seconds"] = payload.total_duration_seconds
        if payload.resolved_total_frames is not None:
            updates["resolved_total_frames"] = payload.resolved_total_frames
        if payload.counties_total is not None:
            updates["counties_total"] = payload.counties_total
        if payload.counties_reporting is not None:
            updates["counties_reporting"] = payload.counties_reporting
        if payload.dynamic_frame_timeline is not None:
            updates["dynamic_frame_timeline"] = payload.dynamic_frame_timeline

        self._progress = replace(self._progress, **updates)
        if not self.is_completed:
            self._mark_running()
        return ApplyResult("applied", envelope.type, f"updated {sorted(updates)}")

    def _apply_enrichment(self, envelope: EnrichmentEnvelope) -> ApplyResult:
        payload = envelope.payload
        if payload.fips is None:
            logger.warning("Enrichment payload missing fips")
            return ApplyResult("ignored", envelope.type, "missing fips")
        if payload.demographics is None:
            logger.debug(f"Enrichment for {payload.fips} carried no demographics")
            return ApplyResult("ignored", envelope.type, "no demographics")

        existing = self._store.ledger_value(payload.fips)
        if existing is not None and payload.enriched_at_total_votes < existing:
            logger.debug(
                f"Skipping stale enrichment for {payload.fips}: "
                f"{payload.enriched_at_total_votes} < {existing} votes"
            )
            return ApplyResult(
                "stale",
                envelope.type,
                f"{payload.fips}: {payload.enriched_at_total_votes} < {existing} votes",
            )

        self._store.record_enrichment(
            payload.fips, payload.enriched_at_total_votes, payload.demographics
        )

        pct = payload.enriched_at_reporting_pct
        pct_text = f", {pct:.1f}% reporting" if pct is not None else ""
        logger.debug(
            f"Enrichment applied for {payload.fips} @ {payload.enriched_at_total_votes} votes{pct_text}"
        )
        return ApplyResult("applied", envelope.type, payload.fips)

    def _apply_completed(self, envelope: CompletedEnvelope) -> ApplyResult:
        if self.is_completed:
            logger.debug("Duplicate completed envelope ignored")
            return ApplyResult("ignored", envelope.type, "already completed")

        payload = envelope.payload
        updates: dict[str, Any] = {"progress_percent": 100.0}
        if payload.counties_reporting is not None:
            updates["counties_reporting"] = payload.counties_reporting
        if payload.counties_total is not None:
            updates["counties_total"] = payload.counties_total
        if payload.total_frames is not None:
            updates["resolved_total_frames"] = payload.total_frames
        if payload.duration_seconds is not None:
            updates["total_duration_seconds"] = payload.duration_seconds

        self._progress = replace(self._progress, **updates)
        self._status = "completed"
        logger.info(f"Simulation completed ({len(self._store)} counties)")
        return ApplyResult("applied", envelope.type, "session completed")

    def _apply_error(self, envelope: ErrorEnvelope) -> ApplyResult:
        self.halt(envelope.payload.message)
        return ApplyResult("fatal", envelope.type, envelope.payload.message)

    def _apply_newsroom(self, envelope: NewsroomEnvelope) -> ApplyResult:
        payload = envelope.payload
        event = NewsroomEvent(
            id=payload.id or str(uuid.uuid4()),
            type=payload.type,
            headline=payload.headline,
            detail=payload.detail,
            state=payload.state,
            state_fips=payload.state_fips,
            margin=payload.margin,
            reporting_percent=payload.reporting_percent,
            simulation_time_seconds=(
                payload.simulation_time_seconds
                if payload.simulation_time_seconds is not None
                else self._progress.simulation_time_seconds
            ),
            severity=payload.severity,
            timestamp=payload.timestamp or datetime.now(timezone.utc).isoformat(),
        )
        self._newsroom.appendleft(event)
        return ApplyResult("applied", envelope.type, event.headline)
