"""Endpoints that trigger synchronisation runs."""
