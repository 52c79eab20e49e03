"""Streaming state: envelope decoding, reconciliation and the state store."""
from election_simulator.streaming.envelopes import Envelope, UnknownEnvelope, decode_envelope
from election_simulator.streaming.reconciler import (
    NEWSROOM_CAPACITY,
    ApplyResult,
    EnvelopeReconciler,
    NewsroomEvent,
    SimulationProgress,
)
from election_simulator.streaming.session import SimulationSession
from election_simulator.streaming.store import StoreSnapshot, StreamingStateStore

__all__ = [
    "ApplyResult",
    "Envelope",
    "EnvelopeReconciler",
    "NEWSROOM_CAPACITY",
    "NewsroomEvent",
    "SimulationProgress",
    "SimulationSession",
    "StoreSnapshot",
    "StreamingStateStore",
    "UnknownEnvelope",
    "decode_envelope",
]
