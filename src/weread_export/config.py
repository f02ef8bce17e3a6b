#!/usr/bin/env python3
"""
Export Configuration Management

Defaults for batch exports, optionally overridden by a JSON config file and
then by command line arguments.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from weread_export.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_DELAY_MS,
    DEFAULT_MAX_ROUNDS,
    DEFAULT_RETRY_SCHEDULE,
    OUTPUT_DIR,
)
from weread_export.models import ExportFormatName
from weread_export.serializers import ExportFormat

logger = logging.getLogger(__name__)


def serialize_paths(obj: Any) -> Any:
    """Recursively convert Path objects to strings."""
    if isinstance(obj, Path):
        return str(obj)
    elif isinstance(obj, dict):
        return {k: serialize_paths(v) for k, v in obj.items()}
    elif isinstance(obj, list | tuple):
        return [serialize_paths(item) for item in obj]
    return obj


@dataclass
class ExportConfig:
    """Settings for a batch export run."""

    user_vid: str = ""
    cookie: str | None = None
    concurrency: int = DEFAULT_CONCURRENCY
    delay_ms: int = DEFAULT_DELAY_MS
    retry_schedule: list[int] = field(default_factory=lambda: list(DEFAULT_RETRY_SCHEDULE))
    max_rounds: int = DEFAULT_MAX_ROUNDS
    retry_unknown_errors: bool = True
    output_dir: Path = OUTPUT_DIR
    format: ExportFormatName = "markdown"
    log_level: str = "INFO"
    log_file: Path | None = None

    def validate(self) -> None:
        """
        Raises:
            ValueError: If any setting is out of range
        """
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {self.concurrency}")
        if self.delay_ms < 0:
            raise ValueError(f"delay_ms must be non-negative, got {self.delay_ms}")
        if self.max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {self.max_rounds}")
        if any(delay < 0 for delay in self.retry_schedule):
            raise ValueError(f"retry_schedule entries must be non-negative, got {self.retry_schedule}")
        ExportFormat.parse(self.format)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form; the cookie is never written out."""
        data = serialize_paths(asdict(self))
        data.pop("cookie", None)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExportConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")

        values = {key: value for key, value in data.items() if key in known}
        if values.get("output_dir") is not None:
            values["output_dir"] = Path(values["output_dir"])
        if values.get("log_file") is not None:
            values["log_file"] = Path(values["log_file"])
        if "retry_schedule" in values:
            values["retry_schedule"] = [int(delay) for delay in values["retry_schedule"]]

        config = cls(**values)
        config.validate()
        return config


def load_export_config(config_path: str | Path | None) -> ExportConfig:
    """
    Load export configuration from a JSON file.

    A missing path or file yields the defaults.

    Raises:
        ValueError: If the file is not valid JSON or holds invalid settings
    """
    if config_path is None:
        return ExportConfig()

    path = Path(config_path)
    if not path.exists():
        logger.info(f"No config file at {path}, using defaults")
        return ExportConfig()

    try:
        with open(path, encoding="utf-8") as f:
            config_dict = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(config_dict, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")

    return ExportConfig.from_dict(config_dict)


def save_export_config(config: ExportConfig, config_path: Path) -> None:
    """Save configuration as JSON (without the cookie)."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)


def apply_config_to_args(args: Any, config: ExportConfig) -> None:
    """
    Apply export configuration to parsed command line arguments.

    Modifies args in place, filling only the arguments that were not
    explicitly provided (left as None).
    """
    for config_field in fields(config):
        if hasattr(args, config_field.name) and getattr(args, config_field.name) is None:
            setattr(args, config_field.name, getattr(config, config_field.name))
