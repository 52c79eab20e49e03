"""Simulation session lifecycle.

A session owns exactly one StreamingStateStore and one EnvelopeReconciler.
Resetting a session discards both and starts a new generation; envelopes
tagged for another session id, and envelopes still being consumed from a
stream opened before the reset, are dropped instead of applied.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter
from collections.abc import AsyncIterable, Iterable, Mapping
from typing import Any

from election_simulator.analytics.aggregation import Aggregates, aggregate
from election_simulator.streaming.envelopes import Envelope, decode_envelope
from election_simulator.streaming.reconciler import (
    ApplyResult,
    EnvelopeReconciler,
    NewsroomEvent,
    SessionStatus,
    SimulationProgress,
)
from election_simulator.streaming.store import StoreSnapshot, StreamingStateStore

logger = logging.getLogger(__name__)


class SimulationSession:
    """Per-session owner of the state store and the reconciler.

    Example:
        >>> session = SimulationSession()
        >>> session.apply({"type": "metadata", "payload": {"totalDurationSeconds": 1200}}).outcome
        'applied'
        >>> session.reset()  # new session id, empty store
    """

    def __init__(self, session_id: str | None = None) -> None:
        """Initialize a new session.

        Args:
            session_id: Identifier envelopes are matched against (uuid4 if omitted)
        """
        self._lock = threading.RLock()
        self._session_id = session_id or str(uuid.uuid4())
        self._generation = 0
        self._store = StreamingStateStore()
        self._reconciler = EnvelopeReconciler(self._store)

    @property
    def session_id(self) -> str:
        """Get unique session identifier."""
        return self._session_id

    @property
    def generation(self) -> int:
        """Number of resets so far."""
        return self._generation

    @property
    def store(self) -> StreamingStateStore:
        return self._store

    @property
    def reconciler(self) -> EnvelopeReconciler:
        return self._reconciler

    @property
    def status(self) -> SessionStatus:
        return self._reconciler.status

    @property
    def error(self) -> str | None:
        return self._reconciler.error

    @property
    def progress(self) -> SimulationProgress:
        return self._reconciler.progress

    @property
    def newsroom_events(self) -> list[NewsroomEvent]:
        return self._reconciler.newsroom_events

    def reset(self, session_id: str | None = None) -> str:
        """Discard all session state and start a new session.

        Args:
            session_id: Identifier for the new session (uuid4 if omitted)

        Returns:
            The new session id
        """
        with self._lock:
            previous = self._session_id
            self._generation += 1
            self._session_id = session_id or str(uuid.uuid4())
            self._store = StreamingStateStore()
            self._reconciler = EnvelopeReconciler(self._store)
        logger.info(f"Session {previous} reset; now {self._session_id} (generation {self._generation})")
        return self._session_id

    def apply(
        self,
        raw: str | bytes | Mapping[str, Any] | Envelope,
        session_id: str | None = None,
    ) -> ApplyResult:
        """Apply one envelope if it belongs to the current session.

        Both the ``session_id`` argument and the envelope's own ``sessionId``
        must match the current session when present. Untagged envelopes are
        accepted.
        """
        envelope = decode_envelope(raw)
        if envelope is None:
            return ApplyResult("rejected", None, "envelope could not be decoded")

        with self._lock:
            tags = [t for t in (session_id, envelope.session_id) if t is not None]
            stale = [t for t in tags if t != self._session_id]
            if stale:
                tag = stale[0]
                logger.info(
                    f"Dropping {envelope.type!r} envelope for session {tag}; "
                    f"current session is {self._session_id}"
                )
                return ApplyResult("dropped", envelope.type, "stale session")
            return self._reconciler.apply(envelope)

    def apply_all(self, envelopes: Iterable[Any]) -> Counter[str]:
        """Apply envelopes in order; returns a count per outcome."""
        outcomes: Counter[str] = Counter()
        for raw in envelopes:
            outcomes[self.apply(raw).outcome] += 1
        return outcomes

    async def consume(self, source: AsyncIterable[Any]) -> Counter[str]:
        """Apply envelopes from an async stream in arrival order.

        The stream is bound to the session that was current when consumption
        started. If the session is reset meanwhile, consumption stops and the
        remaining envelopes are never applied.

        Returns:
            Count of envelopes per outcome
        """
        generation = self._generation
        bound_session = self._session_id
        outcomes: Counter[str] = Counter()

        async for raw in source:
            if self._generation != generation:
                logger.info(f"Session {bound_session} was reset; stopping stream consumption")
                outcomes["dropped"] += 1
                break
            outcomes[self.apply(raw, session_id=bound_session).outcome] += 1

        return outcomes

    def snapshot(self) -> StoreSnapshot:
        return self._store.snapshot()

    def aggregate(self, expected_totals: Mapping[str, int] | int) -> Aggregates:
        """Aggregate the current snapshot with this session's progress counters."""
        progress = self.progress
        return aggregate(
            self.snapshot(),
            expected_totals,
            counties_total=progress.counties_total or None,
            elapsed_seconds=progress.simulation_time_seconds,
        )
