"""Control API (FastAPI)."""
