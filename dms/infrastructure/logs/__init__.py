"""Log file adapters."""
