"""Core: codec, configuration, errors and logging."""
