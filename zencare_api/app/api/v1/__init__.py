"""
Version 1 of the API.

Bundles all endpoints of the first public version of the ZenCare API.
Breaking changes belong in a new version subpackage.
"""
