"""ThreadForge: LLM-backed Twitter/X thread generation API."""

__version__ = "1.0.0"
