"""Command-line interface for sigscore."""

from .main import cli, main

__all__ = ["cli", "main"]
