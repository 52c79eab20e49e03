"""Local library of named reporting timelines.

Saved timelines live in a single JSON cache file. Names match
case-insensitively, so saving under an existing name updates that entry and
keeps its id.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from election_simulator.config.schemas import ReportingConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavedReportingConfig:
    """One saved timeline."""

    id: str
    name: str
    updated_at: str
    config: ReportingConfig
    pattern: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "pattern": self.pattern,
            "updatedAt": self.updated_at,
            "config": self.config.to_document(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SavedReportingConfig:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            pattern=data.get("pattern"),
            updated_at=str(data.get("updatedAt", "")),
            config=ReportingConfig.model_validate(data["config"]),
        )


class ReportingConfigLibrary:
    """Named timelines persisted to a local JSON cache.

    Example:
        >>> library = ReportingConfigLibrary(Path("timelines.json"))
        >>> entry = library.save("Swing night", config, pattern="URBAN_FIRST")
        >>> library.load(entry.id).config == config
        True
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize the library.

        Args:
            path: JSON cache file. Created on first save.
        """
        self._path = Path(path)
        self._entries: list[SavedReportingConfig] = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def entries(self) -> list[SavedReportingConfig]:
        return list(self._entries)

    def find_by_name(self, name: str) -> SavedReportingConfig | None:
        wanted = name.strip().lower()
        for entry in self._entries:
            if entry.name.lower() == wanted:
                return entry
        return None

    def load(self, entry_id: str) -> SavedReportingConfig | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def save(
        self, name: str, config: ReportingConfig, pattern: str | None = None
    ) -> SavedReportingConfig:
        """Save ``config`` under ``name``, replacing an entry with the same name.

        Raises:
            ValueError: If the name is blank
        """
        label = name.strip()
        if not label:
            raise ValueError("Enter a name before saving this timeline.")

        existing = self.find_by_name(label)
        entry = SavedReportingConfig(
            id=existing.id if existing else str(uuid.uuid4()),
            name=label,
            pattern=pattern,
            updated_at=datetime.now(timezone.utc).isoformat(),
            config=config,
        )
        if existing:
            self._entries = [entry if e.id == existing.id else e for e in self._entries]
        else:
            self._entries.append(entry)
        self._write()
        return entry

    def delete(self, entry_id: str) -> bool:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        if len(self._entries) == before:
            return False
        self._write()
        return True

    def _read(self) -> list[SavedReportingConfig]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load saved timelines from {self._path}: {e}")
            return []
        if not isinstance(raw, list):
            logger.error(f"Saved timelines in {self._path} are not a list; ignoring")
            return []

        entries: list[SavedReportingConfig] = []
        for item in raw:
            try:
                entries.append(SavedReportingConfig.from_dict(item))
            except (KeyError, TypeError, ValidationError) as e:
                logger.warning(f"Skipping unreadable saved timeline: {e}")
        return entries

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [entry.to_dict() for entry in self._entries]
        self._path.write_text(json.dumps(payload, indent=2))
