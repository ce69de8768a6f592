"""FastAPI application for Rested."""
