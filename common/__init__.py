"""Shared clinical safety components."""
