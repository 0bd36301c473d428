"""accountsync HTTP API (FastAPI)."""
