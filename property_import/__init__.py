"""Bulk property import pipeline: Google Sheets exports → property listings."""

__version__ = "0.1.0"
