"""Structural validation of reporting configuration documents.

``validate`` never raises. It collects every violation it can find, each with
a field path in document (camelCase) notation, so a caller can decide whether
to reject the document or correct it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import ValidationError

from election_simulator.config.schemas import VALID_ORDERS, ReportingConfig
from election_simulator.shared.data_contracts import FIPS_WIDTH, GEOGRAPHIES

Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found in a configuration document.

    Attributes:
        path: Field path, e.g. ``groupRules[0].pattern.endSeconds``.
        message: Human-readable reason.
        severity: ``error`` blocks use of the document, ``warning`` does not.
    """

    path: str
    message: str
    severity: Severity = "error"

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message, "severity": self.severity}


@dataclass
class ValidationResult:
    """Result of configuration validation.

    Attributes:
        errors: Invariant violations and shape errors.
        warnings: Suspicious but usable settings.
        config: Parsed document, or None if its shape could not be parsed.
    """

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    config: ReportingConfig | None = None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error_paths(self) -> list[str]:
        return [issue.path for issue in self.errors]

    def add_error(self, path: str, message: str) -> None:
        self.errors.append(ValidationIssue(path, message, "error"))

    def add_warning(self, path: str, message: str) -> None:
        self.warnings.append(ValidationIssue(path, message, "warning"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }


def format_path(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as ``a.b[0].c``."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "<root>"


def validate(config: ReportingConfig | Mapping[str, Any] | Any) -> ValidationResult:
    """Validate a reporting configuration.

    Args:
        config: Parsed ReportingConfig, or a raw mapping decoded from JSON/YAML.

    Returns:
        ValidationResult with every error and warning found. Shape errors
        stop the invariant checks, since there is no parsed document to check.
    """
    result = ValidationResult()

    if isinstance(config, ReportingConfig):
        parsed = config
    elif isinstance(config, Mapping):
        try:
            parsed = ReportingConfig.model_validate(dict(config))
        except ValidationError as e:
            for error in e.errors():
                result.add_error(format_path(tuple(error["loc"])), error["msg"])
            return result
    else:
        result.add_error("<root>", f"expected a mapping, got {type(config).__name__}")
        return result

    result.config = parsed
    _check_settings(parsed, result)
    _check_group_rules(parsed, result)
    _check_counties(parsed, result)
    return result


def _check_settings(config: ReportingConfig, result: ValidationResult) -> None:
    if config.duration_seconds <= 0:
        result.add_error("durationSeconds", "must be greater than 0")
    if config.randomization.jitter_seconds < 0:
        result.add_error("randomization.jitterSeconds", "must be >= 0")


def _check_group_rules(config: ReportingConfig, result: ValidationResult) -> None:
    seen_names: set[str] = set()
    for i, rule in enumerate(config.group_rules):
        base = f"groupRules[{i}]"

        name = rule.name.strip()
        if not name:
            result.add_error(f"{base}.name", "must not be empty")
        elif name in seen_names:
            result.add_error(f"{base}.name", f"duplicate rule name: {name}")
        seen_names.add(name)

        flt = rule.filter
        if flt.geography is not None and flt.geography.lower() not in GEOGRAPHIES:
            result.add_error(
                f"{base}.filter.geography",
                f"must be one of {list(GEOGRAPHIES)}, got {flt.geography!r}",
            )
        if flt.order is not None and flt.order.lower() not in VALID_ORDERS:
            result.add_error(
                f"{base}.filter.order",
                f"must be one of {list(VALID_ORDERS)}, got {flt.order!r}",
            )
        if flt.unknown_keys:
            result.add_warning(
                f"{base}.filter",
                f"unrecognized filter keys ignored: {flt.unknown_keys}",
            )

        pattern = rule.pattern
        if pattern.start_seconds < 0:
            result.add_error(f"{base}.pattern.startSeconds", "must be >= 0")
        if pattern.end_seconds < pattern.start_seconds:
            result.add_error(
                f"{base}.pattern.endSeconds",
                f"must be >= startSeconds ({pattern.start_seconds}), got {pattern.end_seconds}",
            )
        if not 0 <= pattern.initial_percent <= 100:
            result.add_error(f"{base}.pattern.initialPercent", "must be between 0 and 100")
        if not 0 <= pattern.final_percent <= 100:
            result.add_error(f"{base}.pattern.finalPercent", "must be between 0 and 100")
        if pattern.final_percent < pattern.initial_percent:
            result.add_error(
                f"{base}.pattern.finalPercent",
                f"must be >= initialPercent ({pattern.initial_percent}), got {pattern.final_percent}",
            )
        if pattern.end_seconds > config.duration_seconds:
            result.add_warning(
                f"{base}.pattern.endSeconds",
                f"window ends after durationSeconds ({config.duration_seconds})",
            )


def _check_counties(config: ReportingConfig, result: ValidationResult) -> None:
    seen: set[str] = set()
    for i, county in enumerate(config.counties):
        base = f"counties[{i}]"

        if len(county.fips) != FIPS_WIDTH or not county.fips.isdigit():
            result.add_error(
                f"{base}.fips", f"must be {FIPS_WIDTH} digits, got {county.fips!r}"
            )
        if county.fips in seen:
            result.add_error(f"{base}.fips", f"duplicate county override: {county.fips}")
        seen.add(county.fips)

        previous_at: float | None = None
        previous_percent: float | None = None
        for j, wave in enumerate(county.reporting_waves):
            wave_path = f"{base}.reportingWaves[{j}]"
            if wave.at_seconds < 0:
                result.add_error(f"{wave_path}.atSeconds", "must be >= 0")
            if not 0 <= wave.percent <= 100:
                result.add_error(f"{wave_path}.percent", "must be between 0 and 100")
            if previous_at is not None and wave.at_seconds < previous_at:
                result.add_error(
                    f"{wave_path}.atSeconds",
                    f"waves must be ordered by time ({wave.at_seconds} < {previous_at})",
                )
            if previous_percent is not None and wave.percent < previous_percent:
                result.add_error(
                    f"{wave_path}.percent",
                    f"reporting may not regress ({wave.percent} < {previous_percent})",
                )
            previous_at = wave.at_seconds
            previous_percent = wave.percent

        if county.mode == "batch":
            if config.batch_trigger_time(county) is None:
                result.add_error(
                    f"{base}.batchTriggerTime",
                    "batch mode requires batchTriggerTime or a batchGroup with a trigger",
                )
            elif county.batch_trigger_time is not None and county.batch_trigger_time < 0:
                result.add_error(f"{base}.batchTriggerTime", "must be >= 0")
            if county.reporting_waves:
                result.add_warning(
                    f"{base}.reportingWaves", "waves are ignored in batch mode"
                )
        elif county.mode == "manual" and not county.reporting_waves:
            result.add_warning(
                f"{base}.reportingWaves",
                "manual county has no waves; it jumps to 100 once triggered",
            )
