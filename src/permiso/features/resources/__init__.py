"""Resources feature."""
