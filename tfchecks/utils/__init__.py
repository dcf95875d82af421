"""Utility helpers for the scanner."""

from .fileio import read_yaml_file, read_text_file
from .iac import blocks_from_template, load_module, load_modules, load_template

__all__ = [
    "read_yaml_file",
    "read_text_file",
    "blocks_from_template",
    "load_module",
    "load_modules",
    "load_template",
]
