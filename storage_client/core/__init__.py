"""Core infrastructure: configuration, logging, errors, task supervision."""
