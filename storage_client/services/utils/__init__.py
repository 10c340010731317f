"""Pure helpers used by the services."""
