"""Command-line interface for the chat relay."""

from .main import cli

__all__ = ["cli"]
