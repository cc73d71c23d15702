"""Application layer: FastAPI app, middleware and operational routes."""
