"""Athlete Scout: multi-source athlete profile aggregation."""

__version__ = "0.1.0"
