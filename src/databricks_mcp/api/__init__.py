"""HTTP API for the streamable-HTTP transport."""
