"""Exceptions raised while loading custom checks and scan inputs."""

from __future__ import annotations


class CheckError(ValueError):
    """Base class for errors that abort a scan before any check runs."""


class ConfigError(CheckError):
    pass


class MalformedRuleDefinition(CheckError):
    """A checks file could not be decoded or failed structural validation."""

    def __init__(self, message: str, source: str | None = None, code: str | None = None) -> None:
        self.source = source
        self.code = code
        prefix = []
        if source:
            prefix.append(source)
        if code:
            prefix.append(f"check {code}")
        if prefix:
            message = f"{': '.join(prefix)}: {message}"
        super().__init__(message)


class UnsupportedAction(MalformedRuleDefinition):
    """A match spec names an action outside the supported vocabulary."""
