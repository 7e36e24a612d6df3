"""Tenants feature."""
