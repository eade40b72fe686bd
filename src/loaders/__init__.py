"""Persistence backends for item annotations."""
