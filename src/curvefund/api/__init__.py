"""HTTP surface for a single campaign (FastAPI)."""
