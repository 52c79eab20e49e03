"""Exception types raised inside the core.

None of these escape the envelope reconciler: it converts them into
structured outcomes and log lines.
"""

from __future__ import annotations


class ElectionSimulatorError(Exception):
    """Base class for all core errors."""


class VoteSumError(ElectionSimulatorError, ValueError):
    """Raised when vote counts cannot form a consistent county record.

    Attributes:
        fips: County identifier the counts belong to.
    """

    def __init__(self, fips: str, message: str) -> None:
        super().__init__(f"{fips}: {message}")
        self.fips = fips
