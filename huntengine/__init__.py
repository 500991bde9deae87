"""Huntengine — IOC classification and threat-hunt execution engine."""

__version__ = "0.1.0"
