"""
CLI Package.

Exports the iampolicyctl command group.
"""

from .iampolicyctl import cli, main

__all__ = ["cli", "main"]
