"""Pydantic schemas for the skill-disclosure API."""
