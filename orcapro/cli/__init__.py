"""
CLI Module - Command-line interface for the OrcaPro budget engine.

Provides commands for:
- Loading exported data
- Budget totals and ABC curves
- Schedule and measurement progress
- Composition catalog search
"""

from .report_commands import cli

__all__ = ['cli']
