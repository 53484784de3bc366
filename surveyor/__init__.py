"""Surveyor - question selection for time-boxed customer feedback calls."""

__version__ = "0.1.0"
