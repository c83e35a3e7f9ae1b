"""Pydantic models shared across the sync layer."""
