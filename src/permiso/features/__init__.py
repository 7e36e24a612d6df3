"""Feature modules: one package per domain concept."""
