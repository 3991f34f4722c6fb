"""Meetball: availability polling for small groups."""

__version__ = "0.1.0"
