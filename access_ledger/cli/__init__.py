"""Command-line entry points (`access-ledger ...`)."""

from .main import app

__all__ = ["app"]
