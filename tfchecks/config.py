"""Scan configuration: check exclusions, severity overrides and worker count."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml

from tfchecks.errors import ConfigError
from tfchecks.severity import Severity
from tfchecks.utils.fileio import read_yaml_file

CONFIG_DIR = ".tfchecks"
DEFAULT_CONFIG_FILES = ("config.yml", "config.yaml", "config.json")


@dataclass(frozen=True)
class ScanConfig:
    exclude: Tuple[str, ...] = ()
    severity_overrides: Dict[str, Severity] = field(default_factory=dict)
    minimum_severity: Severity = Severity.LOW
    workers: int = 1

    def is_excluded(self, code: str) -> bool:
        return code in self.exclude

    def severity_for(self, code: str, default: Severity) -> Severity:
        return self.severity_overrides.get(code, default)

    def merged(
        self,
        exclude: Iterable[str] = (),
        minimum_severity: Optional[str] = None,
        workers: Optional[int] = None,
    ) -> "ScanConfig":
        """Return a copy with command-line values layered on top."""

        updated = self
        extra = tuple(code for code in exclude if code not in self.exclude)
        if extra:
            updated = replace(updated, exclude=self.exclude + extra)
        if minimum_severity is not None:
            updated = replace(updated, minimum_severity=_severity(minimum_severity, "minimum_severity"))
        if workers is not None:
            updated = replace(updated, workers=_workers(workers))
        return updated


def load_config(path: str | Path) -> ScanConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        raw = read_yaml_file(config_path)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file {config_path}: {exc}") from exc
    if raw is None:
        return ScanConfig()
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain an object")
    return config_from_dict(raw)


def config_from_dict(raw: Dict[str, Any]) -> ScanConfig:
    overrides_raw = raw.get("severity_overrides", {}) or {}
    if not isinstance(overrides_raw, dict):
        raise ConfigError("'severity_overrides' must be an object")

    return ScanConfig(
        exclude=tuple(_ensure_string_list(raw.get("exclude", []), "exclude")),
        severity_overrides={
            str(code): _severity(value, f"severity_overrides.{code}") for code, value in overrides_raw.items()
        },
        minimum_severity=_severity(raw.get("minimum_severity", Severity.LOW), "minimum_severity"),
        workers=_workers(raw.get("workers", 1)),
    )


def find_default_config(target: str | Path) -> Optional[Path]:
    """Return ``<target>/.tfchecks/config.*`` when one exists."""

    for name in DEFAULT_CONFIG_FILES:
        candidate = Path(target) / CONFIG_DIR / name
        if candidate.is_file():
            return candidate
    return None


def _severity(value: Any, key: str) -> Severity:
    try:
        return Severity.parse(value)
    except ValueError as exc:
        raise ConfigError(f"'{key}': {exc}") from exc


def _workers(value: Any) -> int:
    try:
        workers = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'workers' must be an integer, got {value!r}") from None
    if workers < 1:
        raise ConfigError("'workers' must be at least 1")
    return workers


def _ensure_string_list(value: object, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of strings")
    return [str(item) for item in value]
