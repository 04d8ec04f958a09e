# Security package init
"""
Photo Enhancement Backend — Security Package
=============================================

What:  Request authentication for service-to-service endpoints.

Inventory:
    - cron_auth.py: bearer-secret guard for the cron endpoints (rotatable
      secrets from CRON_SECRETS, constant-time comparison)

User-facing session authentication lives in the web frontend, not here.
"""
