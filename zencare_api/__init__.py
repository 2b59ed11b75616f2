"""
Top-level package for the ZenCare API.

Everything lives in submodules: the FastAPI application under ``app``
and the external AI counsellor client in ``ai_counselor_client``.
"""

__all__ = []
