"""
Pydantic schema definitions for API payloads.

Each domain (users, counsellors, appointments, reports, ...) defines
its own request and response models.  Schemas are separated from the
SQLite tables so the API representation can evolve independently.
"""
