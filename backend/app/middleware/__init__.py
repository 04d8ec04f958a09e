# Middleware package init
"""
Photo Enhancement Backend — Middleware Package
===============================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    The request ID is set first so the access log line and any error
    response carry it.
"""
