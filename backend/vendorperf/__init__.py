"""Vendor performance classification and alerting engine."""

__version__ = "1.0.0"
