"""Security middleware and policies."""
