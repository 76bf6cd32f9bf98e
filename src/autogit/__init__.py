"""Synthesize backdated version-control activity across a calendar window."""

__version__ = "0.3.0"
