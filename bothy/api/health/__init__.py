"""Liveness and readiness probes for the registry façade."""
