"""Shared volume coordination library used by the CLI and the plugin API."""
