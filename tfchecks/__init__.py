"""Declarative custom checks for infrastructure-as-code scanning."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("tfchecks")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0-dev"

__all__ = ["__version__"]
