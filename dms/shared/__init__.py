"""
Shared module package.

Contains cross-cutting concerns used across bounded contexts:
- Error handling and mapping
- Security middleware (headers, CORS, audit log)
- Rate limiting
- Logging configuration
"""
