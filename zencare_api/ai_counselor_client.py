"""AI counsellor service client.

This module wraps the external AI counsellor REST service.  The service
exposes a single operation, ``POST /api/ai-counselor/chat``, which
takes the student's message together with a small context object and
returns a supportive reply::

    {"success": true, "response": "...", "confidence": 0.75,
     "category": "stress_support", "isCrisis": false}

The client uses the ``requests`` library.  Failures never raise: each
call returns a ``(data, error)`` tuple so the chat service can fall
back to its built-in responder.  An optional API key is sent as a
bearer token in the ``Authorization`` header.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

CHAT_PATH = "/api/ai-counselor/chat"


@dataclass
class AIReply:
    """A reply parsed from the AI counsellor service.

    Attributes:
        response: The text to show to the student.
        confidence: The service's confidence in the reply, 0..1.
        category: Topic label, e.g. ``anxiety_support``.
        is_crisis: Whether the service itself flagged a crisis.
        recommendations: Optional follow-up suggestions.
    """

    response: str
    confidence: float = 0.0
    category: Optional[str] = None
    is_crisis: bool = False
    recommendations: List[str] = field(default_factory=list)


def parse_reply(payload: Any) -> Optional[AIReply]:
    """Turn the service's JSON body into an :class:`AIReply`.

    Both camelCase (``isCrisis``) and snake_case (``is_crisis``) keys
    are accepted.  Returns ``None`` when the body carries no usable
    response text or reports ``success: false``.
    """
    if not isinstance(payload, dict) or payload.get("success") is False:
        return None
    text = payload.get("response")
    if not isinstance(text, str) or not text.strip():
        return None
    try:
        confidence = float(payload.get("confidence") or 0.0)
    except (TypeError, ValueError):
        confidence = 0.0
    recommendations = payload.get("recommendations") or []
    return AIReply(
        response=text.strip(),
        confidence=max(0.0, min(confidence, 1.0)),
        category=payload.get("category"),
        is_crisis=bool(payload.get("isCrisis", payload.get("is_crisis", False))),
        recommendations=[str(item) for item in recommendations] if isinstance(recommendations, list) else [],
    )


class AICounselorClient:
    """Client for the external AI counsellor chat service."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialise the client.

        Args:
            base_url: Base URL of the service, e.g. ``https://ai.example.com``.
            api_key: Optional API key sent as ``Authorization: Bearer <key>``.
            timeout: Request timeout in seconds.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(
        self, method: str, path: str, *, json_body: Any | None = None
    ) -> Tuple[Optional[Any], Optional[Dict[str, Any]]]:
        """Perform an HTTP request to the service.

        Returns:
            A tuple ``(data, error)``.  ``data`` contains the parsed JSON
            response on success and ``error`` is ``None``.  On failure,
            ``data`` is ``None`` and ``error`` is a dictionary with keys
            ``status_code`` and ``message`` describing the issue.
        """
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    message = err_json.get("detail") or err_json.get("message") or str(err_json)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("AI counsellor request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("AI counsellor request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}
        except ValueError as exc:
            logger.error("AI counsellor returned invalid JSON: %s", exc)
            return None, {"status_code": None, "message": "Invalid JSON in response"}

    def chat(
        self,
        message: str,
        *,
        session_id: Optional[str] = None,
        language: str = "en",
        context: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Optional[AIReply], Optional[Dict[str, Any]]]:
        """Send a student message and return ``(reply, error)``."""
        body: Dict[str, Any] = {"message": message, "language": language, "context": context or {}}
        if session_id is not None:
            body["sessionId"] = session_id
        data, error = self._request("POST", CHAT_PATH, json_body=body)
        if error:
            return None, error
        reply = parse_reply(data)
        if reply is None:
            return None, {"status_code": None, "message": "AI counsellor returned no response"}
        return reply, None
