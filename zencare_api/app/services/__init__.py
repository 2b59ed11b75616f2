"""
Service layer.

Each service encapsulates the business logic of one domain on top of
the SQLite connection from ``core.db``.  Services raise ``ValueError``
for domain failures; the endpoints translate those into HTTP errors.
"""
