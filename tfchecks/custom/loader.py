"""Decode checks files (JSON or YAML) into a check registry."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Sequence, Union

import yaml

from tfchecks.errors import MalformedRuleDefinition
from tfchecks.severity import Severity
from tfchecks.utils.fileio import read_text_file

from .checks import Check, CheckRegistry
from .matchspec import MatchSpec

logger = logging.getLogger(__name__)

CHECKS_FILE_SUFFIXES = ("_tfchecks.json", "_tfchecks.yaml", "_tfchecks.yml")
REQUIRED_KEYS = ("code", "requiredTypes", "severity", "matchSpec")


def load_checks(content: str, source: str = "<memory>") -> List[Check]:
    """Decode the text of one checks file, validating every check it holds."""

    # tab-indented JSON is not valid YAML
    try:
        raw = json.loads(content)
    except ValueError:
        try:
            raw = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise MalformedRuleDefinition(f"failed to decode checks file: {exc}", source=source) from exc

    if not isinstance(raw, dict) or not isinstance(raw.get("checks"), list):
        raise MalformedRuleDefinition("checks file must contain a 'checks' list", source=source)

    return [_decode_check(item, source, index) for index, item in enumerate(raw["checks"])]


def load_checks_file(path: Union[str, Path]) -> List[Check]:
    checks_path = Path(path)
    if not checks_path.is_file():
        raise MalformedRuleDefinition("checks file not found", source=str(checks_path))
    return load_checks(read_text_file(checks_path), source=str(checks_path))


def find_checks_files(directory: Union[str, Path]) -> List[Path]:
    """Return the checks files directly inside ``directory``, sorted by name."""

    root = Path(directory)
    if not root.is_dir():
        return []
    return sorted(path for path in root.iterdir() if path.is_file() and path.name.endswith(CHECKS_FILE_SUFFIXES))


def build_registry(paths: Iterable[Union[str, Path]]) -> CheckRegistry:
    """Build a registry from checks files and directories of checks files.

    Any failure aborts the whole build; a partially loaded rule set is never
    returned.
    """

    checks: List[Check] = []
    for path in paths:
        candidate = Path(path)
        files: Sequence[Path] = find_checks_files(candidate) if candidate.is_dir() else [candidate]
        for checks_file in files:
            loaded = load_checks_file(checks_file)
            logger.debug("Loaded %d checks from %s", len(loaded), checks_file)
            checks.extend(loaded)
    registry = CheckRegistry(checks)
    logger.info("Registered %d custom checks", len(registry))
    return registry


def _decode_check(item: Any, source: str, index: int) -> Check:
    if not isinstance(item, dict):
        raise MalformedRuleDefinition(f"checks[{index}] must be an object", source=source)

    code = item.get("code")
    if code is not None and not isinstance(code, str):
        raise MalformedRuleDefinition(f"checks[{index}]: 'code' must be a string", source=source)
    if not code or not code.strip():
        raise MalformedRuleDefinition(f"checks[{index}] is missing a non-empty 'code'", source=source)
    code = code.strip()

    missing = [key for key in REQUIRED_KEYS if key not in item]
    if missing:
        raise MalformedRuleDefinition(f"missing keys: {', '.join(missing)}", source=source, code=code)

    try:
        required_types = _string_list(item.get("requiredTypes"), "requiredTypes")
        if not required_types:
            raise MalformedRuleDefinition("'requiredTypes' must list at least one block type")
        required_labels = _string_list(item.get("requiredLabels"), "requiredLabels")
        related_links = _string_list(item.get("relatedLinks"), "relatedLinks")
        try:
            severity = Severity.parse(item.get("severity"))
        except ValueError as exc:
            raise MalformedRuleDefinition(str(exc)) from exc
        match_spec = MatchSpec.from_dict(item.get("matchSpec"))
    except MalformedRuleDefinition as exc:
        raise type(exc)(str(exc), source=source, code=code) from exc

    problems = list(match_spec.validate())
    if problems:
        raise MalformedRuleDefinition("; ".join(problems), source=source, code=code)

    return Check(
        code=code,
        description=_text(item.get("description")),
        required_types=tuple(required_types),
        required_labels=tuple(required_labels),
        severity=severity,
        match_spec=match_spec,
        error_message=_text(item.get("errorMessage")),
        related_links=tuple(related_links),
        impact=_text(item.get("impact")),
        resolution=_text(item.get("resolution")),
        source=source,
    )


def _string_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(entry, str) for entry in value):
        raise MalformedRuleDefinition(f"'{key}' must be a list of strings")
    return [entry.strip() for entry in value]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
