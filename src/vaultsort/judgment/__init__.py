"""Judgment service client and prompt templates."""
