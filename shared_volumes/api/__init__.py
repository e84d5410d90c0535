"""Docker volume plugin API."""
