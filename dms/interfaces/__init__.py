"""
Interface layer package.

FastAPI routers, request/response schemas and dependency wiring.
"""
