"""
Replisync CLI Module.

Provides command-line interface for Replisync operations.
"""

from replisync.cli.main import main, cli

__all__ = ["main", "cli"]
