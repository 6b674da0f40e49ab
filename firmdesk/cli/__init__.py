"""Command line interface (`python -m firmdesk.cli`)."""

from .__main__ import main

__all__ = ["main"]
