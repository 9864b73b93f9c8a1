"""FastAPI host for a running LiftBank simulation."""
