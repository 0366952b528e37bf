"""
Person Registry Backend — Middleware Package
==============================================

Middleware Chain (request direction):
    Request → [Request ID] → [Logging] → [Security Headers] → [CORS] → Route Handler

    1. Request ID first, so every later log line can carry it
    2. Logging measures everything below it, including error handling
    3. Security headers are added to every response, errors included
    4. CORS handles browser preflight requests from the UI origin
"""
