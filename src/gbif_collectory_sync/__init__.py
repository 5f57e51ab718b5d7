"""Sync GBIF registry dataset metadata into a collectory data catalog."""

__version__ = "1.0.0"
