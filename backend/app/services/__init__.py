# Services package init
"""
Photo Enhancement Backend — Services Layer
===========================================

What:  Business logic between the routes (HTTP) and the database.

Service Inventory:
    - QueueService: poll, claim, dispatch and fail queued photos; stuck report
    - EnhancementClient: HTTP client for the internal enhancement endpoint
"""
