"""Shared helpers used across Bothy packages."""
