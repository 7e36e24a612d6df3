"""Roles feature."""
