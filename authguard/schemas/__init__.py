"""Pydantic response schemas for the HTTP host."""
