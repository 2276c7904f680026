"""Application layer - the presence and liveness core."""
