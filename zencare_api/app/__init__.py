"""
Application package initializer.

Each domain (users, counsellors, appointments, reports, etc.) has its
schemas in ``schemas``, its business logic in ``services`` and a router
in ``api/v1/endpoints``.  Versioning is handled by grouping routers
under the ``api/<version>/`` hierarchy.
"""

from .main import app  # noqa: F401
