"""Dashboard services."""
