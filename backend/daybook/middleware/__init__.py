# Middleware package init
"""
Daybook Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Storage Backend] → [Security Headers] → [Request ID]
            → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Header stamping is outermost so 429 responses carry the headers too
    2. Request ID is set before anything logs or builds an error body
    3. Rate Limit rejects abusive clients before any other work
    4. Logging measures everything below it
"""
