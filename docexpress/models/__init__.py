"""Pydantic models and enumerations."""
