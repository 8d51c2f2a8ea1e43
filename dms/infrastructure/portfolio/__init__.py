"""Portfolio adapters."""
