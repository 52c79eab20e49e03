"""Typed decoding of inbound simulation envelopes.

Every server message is decoded here, once, into one variant of a tagged
union keyed by ``type``. The reconciler only ever sees the typed variants, so
payload shape drift stays at this boundary.

Field precedence when the server uses more than one name for a concept
(first name present wins):

    county gop votes       gopVotes > repVotes > rep_votes > gop_votes
    national gop votes     repVotes > gopVotes
    duration               totalDurationSeconds > effectiveDurationSeconds
    frame count            resolvedTotalFrames > totalFrames
    newsroom headline      headline > title
    newsroom detail        detail > description
    newsroom margin        margin > marginPercent
    error message          message > error

Unknown ``type`` values decode to ``UnknownEnvelope``. Input that is not a
JSON object, or whose payload does not fit its variant, decodes to None with
a logged reason.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from election_simulator.shared.data_contracts import normalize_fips

logger = logging.getLogger(__name__)

FRAME = "frame"
DELTA = "delta"
METADATA = "metadata"
ENRICHMENT = "enrichment"
COMPLETED = "completed"
ERROR = "error"
NEWSROOM = "newsroom"

KNOWN_TYPES: frozenset[str] = frozenset(
    {FRAME, DELTA, METADATA, ENRICHMENT, COMPLETED, ERROR, NEWSROOM}
)


def _choices(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


# ============================================================================
# Payloads
# ============================================================================

class CountyUpdate(_Payload):
    """Vote update for one county inside a frame or delta."""

    fips: str | None = None
    dem_votes: int | None = Field(None, validation_alias=_choices("demVotes", "dem_votes"))
    gop_votes: int | None = Field(
        None, validation_alias=_choices("gopVotes", "repVotes", "rep_votes", "gop_votes")
    )
    total_votes: int | None = Field(None, validation_alias=_choices("totalVotes", "total_votes"))
    reporting_percent: float | None = Field(
        None, validation_alias=_choices("reportingPercent", "reporting_percent")
    )
    demographics: dict[str, Any] | None = None

    @field_validator("fips", mode="before")
    @classmethod
    def normalize_fips_value(cls, v: Any) -> str | None:
        return normalize_fips(v)


class FramePayload(_Payload):
    """Frame/delta body. A delta may omit unchanged counties."""

    simulation_time_seconds: float | None = Field(
        None, validation_alias=_choices("simulationTimeSeconds", "simulation_time_seconds")
    )
    progress_percent: float | None = Field(
        None, validation_alias=_choices("progressPercent", "progress_percent")
    )
    counties_reporting: int | None = Field(
        None, validation_alias=_choices("countiesReporting", "counties_reporting")
    )
    counties_total: int | None = Field(
        None, validation_alias=_choices("countiesTotal", "counties_total")
    )
    dem_votes: int | None = Field(None, validation_alias=_choices("demVotes", "dem_votes"))
    rep_votes: int | None = Field(None, validation_alias=_choices("repVotes", "gopVotes", "rep_votes"))
    counties: list[CountyUpdate] = Field(default_factory=list)

    @field_validator("counties", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class MetadataPayload(_Payload):
    """Simulation-wide bounds."""

    total_duration_seconds: float | None = Field(
        None, validation_alias=_choices("totalDurationSeconds", "effectiveDurationSeconds")
    )
    resolved_total_frames: int | None = Field(
        None, validation_alias=_choices("resolvedTotalFrames", "totalFrames")
    )
    counties_total: int | None = Field(None, validation_alias=_choices("countiesTotal", "counties_total"))
    counties_reporting: int | None = Field(
        None, validation_alias=_choices("countiesReporting", "counties_reporting")
    )
    dynamic_frame_timeline: bool | None = Field(None, validation_alias=_choices("dynamicFrameTimeline"))


class EnrichmentPayload(_Payload):
    """Demographic breakdown for one county, computed at a given vote total."""

    fips: str | None = None
    enriched_at_total_votes: int = Field(
        0, validation_alias=_choices("enrichedAtTotalVotes", "enriched_at_total_votes")
    )
    enriched_at_reporting_pct: float | None = Field(
        None, validation_alias=_choices("enrichedAtReportingPct", "enriched_at_reporting_pct")
    )
    demographics: dict[str, Any] | None = None

    @field_validator("fips", mode="before")
    @classmethod
    def normalize_fips_value(cls, v: Any) -> str | None:
        return normalize_fips(v)

    @field_validator("enriched_at_total_votes", mode="before")
    @classmethod
    def none_as_zero(cls, v: Any) -> Any:
        return 0 if v is None else v


class CompletedPayload(_Payload):
    counties_reporting: int | None = Field(None, validation_alias=_choices("countiesReporting"))
    counties_total: int | None = Field(None, validation_alias=_choices("countiesTotal"))
    total_frames: int | None = Field(None, validation_alias=_choices("totalFrames", "resolvedTotalFrames"))
    duration_seconds: float | None = Field(None, validation_alias=_choices("durationSeconds"))


class ErrorPayload(_Payload):
    message: str = Field("Simulation error", validation_alias=_choices("message", "error"))


class NewsroomPayload(_Payload):
    """Narrative event for the newsroom ticker."""

    id: str | None = None
    type: str = Field("INFO", validation_alias=_choices("type", "eventType"))
    headline: str = Field("Update", validation_alias=_choices("headline", "title"))
    detail: str | None = Field(None, validation_alias=_choices("detail", "description"))
    state: str | None = None
    state_fips: str | None = Field(None, validation_alias=_choices("stateFips", "state_fips"))
    margin: float | None = Field(None, validation_alias=_choices("margin", "marginPercent"))
    reporting_percent: float | None = Field(None, validation_alias=_choices("reportingPercent"))
    simulation_time_seconds: float | None = Field(
        None, validation_alias=_choices("simulationTimeSeconds")
    )
    severity: str = "info"
    timestamp: str | None = None


# ============================================================================
# Envelopes
# ============================================================================

class _Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    session_id: str | None = Field(None, validation_alias=_choices("sessionId", "session_id"))

    @field_validator("payload", mode="before", check_fields=False)
    @classmethod
    def none_payload_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class FrameEnvelope(_Envelope):
    type: Literal["frame", "delta"]
    payload: FramePayload = Field(default_factory=FramePayload)


class MetadataEnvelope(_Envelope):
    type: Literal["metadata"]
    payload: MetadataPayload = Field(default_factory=MetadataPayload)


class EnrichmentEnvelope(_Envelope):
    type: Literal["enrichment"]
    payload: EnrichmentPayload = Field(default_factory=EnrichmentPayload)


class CompletedEnvelope(_Envelope):
    type: Literal["completed"]
    payload: CompletedPayload = Field(default_factory=CompletedPayload)


class ErrorEnvelope(_Envelope):
    type: Literal["error"]
    payload: ErrorPayload = Field(default_factory=ErrorPayload)


class NewsroomEnvelope(_Envelope):
    type: Literal["newsroom"]
    payload: NewsroomPayload = Field(default_factory=NewsroomPayload)


class UnknownEnvelope(_Envelope):
    """Envelope with a type this version does not understand."""

    type: str | None = None
    payload: Any = None


KnownEnvelope = Annotated[
    Union[
        FrameEnvelope,
        MetadataEnvelope,
        EnrichmentEnvelope,
        CompletedEnvelope,
        ErrorEnvelope,
        NewsroomEnvelope,
    ],
    Field(discriminator="type"),
]

Envelope = Union[
    FrameEnvelope,
    MetadataEnvelope,
    EnrichmentEnvelope,
    CompletedEnvelope,
    ErrorEnvelope,
    NewsroomEnvelope,
    UnknownEnvelope,
]

_known_adapter: TypeAdapter[Any] = TypeAdapter(KnownEnvelope)


def decode_envelope(raw: str | bytes | Mapping[str, Any] | Any) -> Envelope | None:
    """Decode one inbound message.

    Args:
        raw: JSON text/bytes, or an already parsed mapping.

    Returns:
        Typed envelope, UnknownEnvelope for an unrecognized type, or None if
        the message cannot be decoded.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to parse envelope JSON: {e}")
            return None

    if isinstance(raw, (FrameEnvelope, MetadataEnvelope, EnrichmentEnvelope, CompletedEnvelope,
                        ErrorEnvelope, NewsroomEnvelope, UnknownEnvelope)):
        return raw

    if not isinstance(raw, Mapping):
        logger.warning(f"Envelope is not a JSON object: {type(raw).__name__}")
        return None

    envelope_type = raw.get("type")
    if not isinstance(envelope_type, str) or envelope_type not in KNOWN_TYPES:
        try:
            return UnknownEnvelope.model_validate({
                "type": None if envelope_type is None else str(envelope_type),
                "payload": raw.get("payload"),
                "sessionId": raw.get("sessionId", raw.get("session_id")),
            })
        except ValidationError as e:
            logger.warning(f"Malformed {envelope_type!r} envelope dropped: {e.error_count()} error(s): {e}")
            return None

    try:
        return _known_adapter.validate_python(dict(raw))
    except ValidationError as e:
        logger.warning(f"Malformed {envelope_type} envelope dropped: {e.error_count()} error(s): {e}")
        return None
