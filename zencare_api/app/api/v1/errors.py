"""
Translation of service errors into HTTP responses.

Services raise ``ValueError`` whose message names the failure.  The
endpoint handlers turn it into an ``HTTPException`` with a matching
status code:

* "... not found" -> 404
* "Only ..." / "Not authorized ..." -> 403
* "... already exists" -> 409
* anything else -> 400
"""

import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


def http_error(exc: ValueError) -> HTTPException:
    detail = str(exc)
    if "not found" in detail:
        status_code = status.HTTP_404_NOT_FOUND
    elif detail.startswith("Only") or detail.startswith("Not authorized"):
        status_code = status.HTTP_403_FORBIDDEN
    elif "already exists" in detail:
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail=detail)


def server_error(operation: str, exc: Exception) -> HTTPException:
    logger.exception("Unexpected error during %s: %s", operation, exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
