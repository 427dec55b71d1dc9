"""Vault reading, note analysis and folder scanning."""
