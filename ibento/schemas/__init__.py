"""API Schemas — Pydantic models at the HTTP boundary."""
