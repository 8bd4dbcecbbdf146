"""CLI commands for K-Line Waker.

This package provides the command-line interface: reminder tasks and the
live countdown, the trade journal, its instruments, accounts and
strategies, and journal statistics.
"""

from klinewaker.cli.main import cli, main

__all__ = ["cli", "main"]
