"""Expiring key/value storage on top of an options table."""

__version__ = "1.0.0"
