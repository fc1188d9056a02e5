"""HTTP clients for the upstream providers (xAI, Serper)."""
