"""HTTP API for the meta registry."""
