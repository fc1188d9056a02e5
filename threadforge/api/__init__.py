"""HTTP surface of ThreadForge (FastAPI)."""
