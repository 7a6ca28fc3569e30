"""Roster upload validation and certificate-request submission."""

__version__ = "0.1.0"
