"""Clinical safety HTTP API."""
