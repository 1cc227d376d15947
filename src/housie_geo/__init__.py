"""Geo coordination services for the HOUSIE marketplace."""

__version__ = "0.1.0"
