"""HTTP boundary — FastAPI app factory and action routers."""
