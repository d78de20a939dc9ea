"""Attribute resolution, validation and migration of parsed blocks."""
