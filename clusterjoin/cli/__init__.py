"""
clusterjoin command line interface.

Runs startup joins from the shell and inspects how a join list resolves.
"""

from .main import cli, main

__all__ = ["main", "cli"]
