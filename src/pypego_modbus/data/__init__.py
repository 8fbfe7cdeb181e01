"""Packaged register tables."""
