"""Pydantic schemas for API requests, responses and service results."""
