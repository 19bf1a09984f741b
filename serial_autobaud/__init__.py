"""Automatic baud rate and serial parameter detection with prioritised negotiation strategies."""

__version__ = "3.2.0"