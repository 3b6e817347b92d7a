"""API dependencies."""
