"""Properties feature."""
