"""Partial updates of reporting configuration documents."""
from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from election_simulator.config.schemas import ReportingConfig


def _camel_key(key: str) -> str:
    if "_" not in key:
        return key
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _camelize(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {_camel_key(str(k)): _camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_camelize(item) for item in value]
    return value


def _deep_merge(base: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def merge(base: ReportingConfig, patch: Mapping[str, Any]) -> ReportingConfig:
    """Apply a partial update to ``base`` without mutating it.

    Nested mappings (``randomization``) merge key by key; lists
    (``groupRules``, ``counties``) are replaced wholesale. Patch keys may be
    camelCase or snake_case.

    Args:
        base: Configuration to start from.
        patch: Partial document.

    Returns:
        A new ReportingConfig.

    Raises:
        ValueError: If the merged document is malformed.
    """
    document = base.model_dump(by_alias=True, mode="json")
    merged = _deep_merge(document, _camelize(patch))
    try:
        return ReportingConfig.model_validate(merged)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration patch: {e}") from e
