"""Operational routes (health, admin)."""
