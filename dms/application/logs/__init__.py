"""Application layer for the log viewer."""
