"""Pinning API and gateway endpoints."""
