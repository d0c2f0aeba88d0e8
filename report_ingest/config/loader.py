from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    BatchingConfig,
    BatchThreshold,
    DatabaseConfig,
    ImportConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config (default config/import.yml)
- Validate against the bundled JSON schema
- Apply defaults for every missing key
- Return the typed ImportConfig
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "resolve_config_path",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")
CONFIG_ENV_VAR = "REPORT_INGEST_CONFIG"


class ConfigError(Exception):
    pass


def resolve_config_path(explicit: str | Path | None = None) -> Path:
    """Pick the config path: explicit argument, then env var, then default."""
    if explicit:
        return Path(explicit)
    from_env = os.getenv(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env)
    return DEFAULT_CONFIG_PATH


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Args:
        data: Configuration data to validate

    Raises:
        ConfigError: If the schema file is missing or invalid, or the config
            data fails schema validation.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_batching(raw: dict[str, Any]) -> BatchingConfig:
    defaults = BatchingConfig()
    thresholds_raw = raw.get("thresholds")
    if thresholds_raw is None:
        thresholds = defaults.thresholds
    else:
        thresholds = tuple(
            BatchThreshold(min_rows=int(t["min_rows"]), size=int(t["size"])) for t in thresholds_raw
        )
    return BatchingConfig(
        thresholds=thresholds,
        default_size=int(raw.get("default_size", defaults.default_size)),
    )


def load_config(path: Path | None = None, *, required: bool = False) -> ImportConfig:
    """Load and validate the importer configuration.

    Args:
        path: YAML file to read (None resolves via resolve_config_path)
        required: Raise when the file does not exist instead of using defaults

    Returns:
        ImportConfig with defaults applied for missing keys

    Raises:
        ConfigError: Missing required file, invalid YAML, or schema violation
    """
    path = resolve_config_path(path)
    if not path.exists():
        if required:
            raise ConfigError(f"config file not found: {path}")
        return ImportConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    defaults = ImportConfig()
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        database=db,
        batching=_build_batching(data.get("batching") or {}),
        max_errors=data.get("max_errors", defaults.max_errors),
        segment_fallback=data.get("segment_fallback", defaults.segment_fallback),
        default_duplicate_handling=data.get(
            "default_duplicate_handling", defaults.default_duplicate_handling
        ),
        upload_dir=data.get("upload_dir", defaults.upload_dir),
        error_log_dir=data.get("error_log_dir", defaults.error_log_dir),
        progress_log_every=data.get("progress_log_every", defaults.progress_log_every),
    )
