"""Shared utilities for bundlelens."""
