"""Election-night reporting timeline scheduler and streaming reconciliation engine.

Subpackages:
    config: Reporting configuration models, validation, templates and loading
    schedule: Deterministic time -> reporting percent resolution
    streaming: Envelope decoding, state store, reconciler and session lifecycle
    analytics: Pure aggregation over store snapshots
"""

__version__ = "0.1.0"
