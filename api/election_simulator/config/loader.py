"""JSON/YAML reporting configuration loader."""
from __future__ import annotations

import json
from pathlib import Path

import yaml

from election_simulator.config.schemas import ReportingConfig
from election_simulator.config.validation import validate

YAML_SUFFIXES = {".yaml", ".yml"}


def load_reporting_config(config_path: str | Path, strict: bool = False) -> ReportingConfig:
    """
    Load a reporting configuration from a JSON or YAML file.

    Args:
        config_path: Path to a ``.json``, ``.yaml`` or ``.yml`` file
        strict: Also run invariant validation and reject invalid documents

    Returns:
        Parsed ReportingConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If the document is malformed (or invalid, when strict)
        yaml.YAMLError: If YAML parsing fails
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        if config_path.suffix.lower() in YAML_SUFFIXES:
            config_dict = yaml.safe_load(f)
        else:
            try:
                config_dict = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {config_path}: {e}") from e

    if config_dict is None:
        raise ValueError(f"Empty configuration file: {config_path}")

    result = validate(config_dict)
    if result.config is None or (strict and not result.is_valid):
        details = "; ".join(f"{issue.path}: {issue.message}" for issue in result.errors)
        raise ValueError(f"Invalid configuration: {details}")

    return result.config


def dump_reporting_config(config: ReportingConfig, config_path: str | Path) -> Path:
    """
    Write a reporting configuration as camelCase JSON or YAML.

    The format follows the file suffix; anything that is not YAML is JSON.

    Returns:
        The path written
    """
    config_path = Path(config_path)
    document = config.to_document()

    with open(config_path, "w") as f:
        if config_path.suffix.lower() in YAML_SUFFIXES:
            yaml.safe_dump(document, f, sort_keys=False)
        else:
            json.dump(document, f, indent=2)
            f.write("\n")

    return config_path
