"""Reporting configuration module."""
from pydantic import ValidationError

from .library import ReportingConfigLibrary, SavedReportingConfig
from .loader import dump_reporting_config, load_reporting_config
from .merge import merge
from .schemas import (
    CountyReporting,
    GroupFilter,
    GroupRule,
    RandomizationConfig,
    ReportingConfig,
    ReportingPattern,
    ReportingWave,
)
from .templates import (
    DEFAULT_WAVES,
    TEMPLATE_DESCRIPTIONS,
    TEMPLATE_KEYS,
    add_county_override,
    build_pattern,
    default_override,
    describe_template,
)
from .validation import ValidationIssue, ValidationResult, validate

__all__ = [
    "CountyReporting",
    "DEFAULT_WAVES",
    "GroupFilter",
    "GroupRule",
    "RandomizationConfig",
    "ReportingConfig",
    "ReportingConfigLibrary",
    "ReportingPattern",
    "ReportingWave",
    "SavedReportingConfig",
    "TEMPLATE_DESCRIPTIONS",
    "TEMPLATE_KEYS",
    "ValidationError",
    "ValidationIssue",
    "ValidationResult",
    "add_county_override",
    "build_pattern",
    "default_override",
    "describe_template",
    "dump_reporting_config",
    "load_reporting_config",
    "merge",
    "validate",
]
