"""
handlers/ - Presentation Layer
================================
FastAPI routers. Each handler validates the request body, resolves the
calling owner, delegates to the appropriate Service, and returns plain
JSON records. No business logic lives here.
"""
