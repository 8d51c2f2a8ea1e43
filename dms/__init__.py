"""Dividend management server."""
