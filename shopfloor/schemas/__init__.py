"""Pydantic schemas — validated inputs and snapshot outputs."""
