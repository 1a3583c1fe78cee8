"""
Command line interface: manifest validation, API diffing and the sentinel.
"""

from cosmos.cli.main import build_parser, main

__all__ = ["build_parser", "main"]
