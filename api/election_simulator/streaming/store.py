"""In-memory state store for one simulation session.

Owns the per-county records, the demographic breakdowns and the enrichment
ledger (the vote total at which each county's demographics were last
accepted). One store exists per session; it is discarded on reset.

Single writer (the envelope reconciler), many readers. Writers take the lock;
readers get immutable snapshots built under the same lock, so a reader never
sees part of an envelope's writes.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from election_simulator.shared.data_contracts import CountySimulationState, normalize_fips


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable view of the store at one instant.

    Attributes:
        counties: fips -> county record
        demographics: fips -> demographic breakdown
        enrichment_ledger: fips -> vote total of the last accepted enrichment
    """

    counties: Mapping[str, CountySimulationState]
    demographics: Mapping[str, Mapping[str, Any]]
    enrichment_ledger: Mapping[str, int]

    def __len__(self) -> int:
        return len(self.counties)

    def __iter__(self) -> Iterator[CountySimulationState]:
        return iter(self.counties.values())

    def get(self, fips: str) -> CountySimulationState | None:
        normalized = normalize_fips(fips)
        return None if normalized is None else self.counties.get(normalized)


def _require_fips(fips: str) -> str:
    normalized = normalize_fips(fips)
    if normalized is None:
        raise ValueError("fips is required")
    return normalized


class StreamingStateStore:
    """Authoritative per-county state for one simulation session.

    Example:
        >>> store = StreamingStateStore()
        >>> store.upsert("01001", CountySimulationState.from_votes("01001", 10, 12, 25, 5.0))
        >>> store.get("1001").current_other_votes
        3
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._counties: dict[str, CountySimulationState] = {}
        self._demographics: dict[str, dict[str, Any]] = {}
        self._ledger: dict[str, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._counties)

    def __contains__(self, fips: object) -> bool:
        normalized = normalize_fips(fips)
        with self._lock:
            return normalized in self._counties

    def get(self, fips: str) -> CountySimulationState | None:
        normalized = normalize_fips(fips)
        with self._lock:
            return self._counties.get(normalized) if normalized else None

    def upsert(self, fips: str, state: CountySimulationState) -> None:
        """Replace the whole record for ``fips``.

        Raises:
            ValueError: If ``fips`` does not identify ``state``
        """
        self.upsert_many([(fips, state)])

    def upsert_many(
        self,
        records: Iterable[tuple[str, CountySimulationState]],
        demographics: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        """Replace several records, and optionally their demographics, in one step.

        Every record is checked before any is written, so either all of them
        land or none do. Demographics written here never touch the ledger.

        Raises:
            ValueError: If any key does not identify its record
        """
        staged: list[tuple[str, CountySimulationState]] = []
        for fips, state in records:
            normalized = _require_fips(fips)
            if state.fips != normalized:
                raise ValueError(f"Record for {state.fips} cannot be stored under {normalized}")
            staged.append((normalized, state))
        breakdowns = {
            _require_fips(fips): copy.deepcopy(dict(values))
            for fips, values in (demographics or {}).items()
        }

        with self._lock:
            for normalized, state in staged:
                self._counties[normalized] = state
            self._demographics.update(breakdowns)

    def demographics(self, fips: str) -> dict[str, Any] | None:
        normalized = normalize_fips(fips)
        with self._lock:
            value = self._demographics.get(normalized) if normalized else None
            return copy.deepcopy(value) if value is not None else None

    def set_demographics(self, fips: str, demographics: Mapping[str, Any]) -> None:
        """Replace the demographic breakdown without touching the ledger."""
        normalized = _require_fips(fips)
        with self._lock:
            self._demographics[normalized] = copy.deepcopy(dict(demographics))

    def ledger_value(self, fips: str) -> int | None:
        """Vote total of the last accepted enrichment, or None if there is none."""
        normalized = normalize_fips(fips)
        with self._lock:
            return self._ledger.get(normalized) if normalized else None

    def record_enrichment(
        self, fips: str, enriched_at_total_votes: int, demographics: Mapping[str, Any]
    ) -> None:
        """Accept an enrichment: advance the ledger and replace demographics."""
        normalized = _require_fips(fips)
        with self._lock:
            self._ledger[normalized] = enriched_at_total_votes
            self._demographics[normalized] = copy.deepcopy(dict(demographics))

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return StoreSnapshot(
                counties=MappingProxyType(dict(self._counties)),
                demographics=MappingProxyType(
                    {k: MappingProxyType(copy.deepcopy(v)) for k, v in self._demographics.items()}
                ),
                enrichment_ledger=MappingProxyType(dict(self._ledger)),
            )

    def reset(self) -> None:
        """Drop every record, breakdown and ledger entry."""
        with self._lock:
            self._counties.clear()
            self._demographics.clear()
            self._ledger.clear()
