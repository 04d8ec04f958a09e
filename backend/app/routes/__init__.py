# Routes package init
"""
Photo Enhancement Backend — API Routes Package
===============================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - cron.py:    GET/POST /api/cron/process-photos  (run one queue batch)
                  GET      /api/cron/stuck-photos    (stuck report)
    - health.py:  GET      /health                   (service health check)

Routes stay thin: authenticate, call a service, return its result.
"""
