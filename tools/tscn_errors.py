#!/usr/bin/env python3
"""
tscn_errors.py - Error collection shared by the TSCN converter and tscnc.py.

Errors stop the CLI before anything is written. Warnings are problems the
caller chose to tolerate (e.g. odd tile bounds with --allow-odd-bounds);
they are reported but never change the exit code.
"""

from __future__ import annotations

import sys
from typing import List


class ConfigError(ValueError):
    """Raised when a converter config file cannot be used."""


class ErrorCollector:
    """Gathers conversion errors and tolerated warnings for one input file."""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def add_error(self, error: str):
        self.errors.append(error)

    def add_warning(self, warning: str):
        self.warnings.append(warning)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def report_and_exit(self, prefix: str = ""):
        """Print every error as a numbered list and exit 1; no-op without errors."""
        if not self.errors:
            return

        print(f"\n{prefix}{len(self.errors)} error(s) converting scene:", file=sys.stderr)
        for i, error in enumerate(self.errors, 1):
            print(f"  {i}. {error}", file=sys.stderr)
        if self.warnings:
            print(f"  (+{len(self.warnings)} tolerated warning(s))", file=sys.stderr)
        print("", file=sys.stderr)
        sys.exit(1)
