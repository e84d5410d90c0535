"""Service layer for the plugin API."""
