"""Permissions feature."""
