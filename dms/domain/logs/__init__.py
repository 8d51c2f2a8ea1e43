"""
Log viewer bounded context: domain layer.

Structured log entries written by the server, and the pure rules for
filtering and paging them.
"""
