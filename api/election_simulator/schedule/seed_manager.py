"""Deterministic per-county jitter derivation.

All randomness in the schedule resolver flows through this manager, so the
same seed always produces the same timeline.
"""

from __future__ import annotations

import hashlib

SEED_SPACE = 2**31


class SeedManager:
    """Derives reproducible per-county values from one configuration seed.

    Derivation hierarchy:
    - seed
      ├── jitter
      │   ├── 01001
      │   ├── 01003
      │   └── ...
      └── (future streams get their own first component)

    Example:
        >>> manager = SeedManager(seed=42)
        >>> manager.jitter_offset("01001", 300) == manager.jitter_offset("01001", 300)
        True
    """

    def __init__(self, seed: int) -> None:
        """Initialize the seed manager.

        Args:
            seed: The configuration seed all derived values come from.
        """
        self.seed = seed

    def derive_seed(self, *components: str | int) -> int:
        """Derive a sub-seed from the seed and hierarchical components.

        Uses SHA-256 so the same inputs always produce the same output and
        different inputs produce statistically independent outputs in
        ``[0, 2^31)``.

        Args:
            *components: Hierarchical components (e.g., "jitter", "01001")

        Returns:
            Deterministic seed derived from seed + components
        """
        key = ":".join(str(c) for c in [self.seed, *components])
        hash_bytes = hashlib.sha256(key.encode()).digest()
        return int.from_bytes(hash_bytes[:8], byteorder="big") % SEED_SPACE

    def unit_interval(self, *components: str | int) -> float:
        """Deterministic value in ``[0, 1)`` for the given components."""
        return self.derive_seed(*components) / SEED_SPACE

    def jitter_offset(self, fips: str, jitter_seconds: float) -> float:
        """Time displacement for one county, within ``±jitter_seconds``.

        Args:
            fips: Normalized county identifier.
            jitter_seconds: Maximum absolute displacement.

        Returns:
            Offset in seconds; 0 when jitter is 0.
        """
        if jitter_seconds <= 0:
            return 0.0
        return (self.unit_interval("jitter", fips) * 2.0 - 1.0) * jitter_seconds
