"""Synchronized watch-party client and relay."""

__version__ = "0.1.0"
