"""
CLI module for Mindrift.

The command-line interface providing import-edits, insight, timeline,
classify, annotate and annotations commands.
"""

from mindrift_cli.main import app

__all__ = ["app"]
