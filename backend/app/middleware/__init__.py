"""
DevDoc Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first, as registered in main.py):
    Request → [Rate Limit] → [Request ID] → [Logging] → [Security Headers]
            → [GZip] → [CORS] → Route Handler

    - Rate Limit rejects abusive clients before any other work
    - Request ID must exist before the access log line is written
    - Security headers are stamped on every response, errors included
"""
