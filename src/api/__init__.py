"""HTTP API for the LTI apps service."""
