"""Pie party event service: RSVPs, pie entries, category voting and results."""

__version__ = "0.1.0"
