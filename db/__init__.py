"""
db/ - Database Layer
====================
Handles PostgreSQL (or local SQLite) connections, schema initialization,
and transaction boundaries.
This layer is the lowest in the architecture and has no dependencies on other layers.
"""
