"""Serialization and block type registration."""
