"""
AI counsellor chat.

Each student message is stored in an ``ai_chat_sessions`` thread and
screened by the crisis detector first.  A crisis gets the fixed crisis
response, a crisis alert and a moderation report.  Anything else goes to
the external AI counsellor service; when that is not configured or
fails, a built-in supportive responder answers instead, taking the
student's latest PHQ-9 and GAD-7 scores into account.
"""

import logging
import random
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from zencare_api.ai_counselor_client import AICounselorClient, AIReply
from zencare_api.app.core.config import settings
from zencare_api.app.core.db import get_connection, utc_now
from zencare_api.app.schemas.chat import ChatMessageRead, ChatRequest, ChatResponse, ChatSessionRead
from zencare_api.app.services.crisis_alert_service import record_crisis_alert
from zencare_api.app.services.crisis_detector import crisis_detector

logger = logging.getLogger(__name__)

# messages sent along with each external request as ``context.chatHistory``
HISTORY_LENGTH = 5

DEPRESSION_RESPONSES = [
    "I can see from your assessment that you're experiencing significant depression symptoms. It takes courage "
    "to reach out. What's been the most challenging part of your day today?",
    "Your PHQ-9 score indicates you're going through a really difficult time. What you're feeling is valid, and "
    "there are ways to feel better. Can you tell me about one small thing that brought you a moment of peace recently?",
    "Depression can make everything feel overwhelming. Let's focus on just this moment. What's one thing you can "
    "do today to take care of yourself, even if it's something very small?",
]

ANXIETY_RESPONSES = [
    "I can see from your assessment that anxiety is really affecting you. You're not alone in this. What "
    "situations tend to trigger your anxiety the most?",
    "Your GAD-7 score shows you're experiencing significant anxiety. Let's try a grounding technique: name 5 "
    "things you can see, 4 you can touch, 3 you can hear, 2 you can smell and 1 you can taste.",
    "Anxiety can make your mind race. Let's focus on your breathing: in for 4 counts, hold for 4, then out for 6. "
    "How does that feel?",
]

TOPIC_RESPONSES = [
    (
        ("stress",),
        "stress_support",
        "Stress is something we all experience, and it sounds like you're dealing with quite a bit right now. "
        "What's been your biggest source of stress lately?",
    ),
    (
        ("sleep", "tired"),
        "sleep_support",
        "Sleep issues can really impact how we feel during the day. Are you having trouble falling asleep, "
        "staying asleep, or both?",
    ),
    (
        ("lonely", "alone"),
        "loneliness_support",
        "Feeling lonely can be really painful, and it doesn't mean you're alone - many people experience this. "
        "What usually helps you feel more connected to others?",
    ),
    (
        ("angry", "frustrated"),
        "anger_support",
        "It sounds like you're feeling really frustrated or angry about something. Those are valid emotions. "
        "What's been triggering these feelings for you?",
    ),
]

GENERAL_RESPONSES = [
    "Thank you for sharing that with me. It sounds like you're going through something difficult. Can you tell "
    "me more about what's on your mind?",
    "I hear you, and your feelings are valid. What would be most helpful for you to talk about right now?",
    "It takes strength to reach out when you're struggling. What's been the most challenging part of your day?",
    "I'm here to listen and support you. What's one thing that's been weighing on your mind lately?",
]


def fallback_reply(message: str, scores: Optional[Dict[str, Optional[int]]] = None) -> AIReply:
    """Built-in supportive responder used when the AI service is unavailable."""
    scores = scores or {}
    if (scores.get("phq9") or 0) >= 15:
        return AIReply(random.choice(DEPRESSION_RESPONSES), 0.85, "depression_support")
    if (scores.get("gad7") or 0) >= 10:
        return AIReply(random.choice(ANXIETY_RESPONSES), 0.85, "anxiety_support")
    lowered = message.lower()
    for words, category, text in TOPIC_RESPONSES:
        if any(word in lowered for word in words):
            return AIReply(text, 0.75, category)
    return AIReply(random.choice(GENERAL_RESPONSES), 0.65, "general_support")


def _latest_scores(cursor: sqlite3.Cursor, user_id: int) -> Dict[str, Optional[int]]:
    scores: Dict[str, Optional[int]] = {}
    for assessment_type in ("phq9", "gad7"):
        row = cursor.execute(
            "SELECT score FROM assessments WHERE student_id = ? AND type = ? ORDER BY created_at DESC, id DESC LIMIT 1",
            (user_id, assessment_type),
        ).fetchone()
        scores[assessment_type] = row["score"] if row else None
    return scores


def _recent_messages(cursor: sqlite3.Cursor, session_id: int, before_id: int) -> List[Dict[str, str]]:
    """The last ``HISTORY_LENGTH`` messages of a session older than ``before_id``, oldest first."""
    rows = cursor.execute(
        "SELECT sender, content FROM ai_messages WHERE session_id = ? AND id < ? ORDER BY id DESC LIMIT ?",
        (session_id, before_id, HISTORY_LENGTH),
    ).fetchall()
    return [{"sender": row["sender"], "content": row["content"]} for row in reversed(rows)]


def _insert_message(
    cursor: sqlite3.Cursor,
    session_id: int,
    sender: str,
    content: str,
    category: Optional[str] = None,
    confidence: Optional[float] = None,
    is_crisis: bool = False,
) -> int:
    cursor.execute(
        """
        INSERT INTO ai_messages (session_id, sender, content, category, confidence, is_crisis)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (session_id, sender, content, category, confidence, int(is_crisis)),
    )
    return cursor.lastrowid


def get_client() -> Optional[AICounselorClient]:
    if not settings.ai_chat_url:
        return None
    return AICounselorClient(
        base_url=settings.ai_chat_url,
        api_key=settings.ai_chat_api_key or None,
        timeout=settings.ai_chat_timeout,
    )


class AIChatService:

    @classmethod
    async def chat(cls, user: Dict[str, Any], request: ChatRequest) -> ChatResponse:
        user_id = user.get("user_id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if request.session_id is not None:
                session = cursor.execute(
                    "SELECT id, user_id FROM ai_chat_sessions WHERE id = ?", (request.session_id,)
                ).fetchone()
                if not session:
                    raise ValueError(f"Chat session {request.session_id} not found")
                if session["user_id"] != user_id:
                    raise ValueError("Not authorized to use this chat session")
                session_id = session["id"]
            else:
                cursor.execute(
                    "INSERT INTO ai_chat_sessions (user_id, language) VALUES (?, ?)", (user_id, request.language)
                )
                session_id = cursor.lastrowid
            user_message_id = _insert_message(cursor, session_id, "user", request.message)
            # persist the user's message before the external call
            conn.commit()

            detection = crisis_detector.detect(request.message, request.language)
            if detection.is_crisis:
                reply = AIReply(
                    response=detection.response,
                    confidence=detection.confidence,
                    category="crisis_support",
                    is_crisis=True,
                    recommendations=detection.recommendations,
                )
                record_crisis_alert(
                    cursor,
                    user_id,
                    "ai_chat",
                    request.message,
                    detection.matched_keywords,
                    session_id=session_id,
                )
                cursor.execute("UPDATE ai_chat_sessions SET crisis_flag = 1 WHERE id = ?", (session_id,))
            else:
                scores = _latest_scores(cursor, user_id)
                reply = None
                client = get_client()
                if client is not None:
                    context = dict(request.context or {})
                    context.setdefault(
                        "assessmentResults",
                        {name: {"score": score} for name, score in scores.items() if score is not None},
                    )
                    context.setdefault("chatHistory", _recent_messages(cursor, session_id, user_message_id))
                    reply, error = await run_in_threadpool(
                        client.chat,
                        request.message,
                        session_id=str(session_id),
                        language=request.language,
                        context=context,
                    )
                    if error:
                        logger.warning("AI counsellor unavailable, using fallback responder: %s", error["message"])
                if reply is None:
                    reply = fallback_reply(request.message, scores)

            message_id = _insert_message(
                cursor, session_id, "ai", reply.response, reply.category, reply.confidence, reply.is_crisis
            )
            cursor.execute(
                "UPDATE ai_chat_sessions SET message_count = message_count + 2, updated_at = ? WHERE id = ?",
                (utc_now(), session_id),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("AI chat failed for user %s: %s", user_id, e)
            raise
        finally:
            conn.close()
        logger.info("AI chat session %s: reply category %s", session_id, reply.category)
        return ChatResponse(
            session_id=session_id,
            message_id=message_id,
            response=reply.response,
            category=reply.category,
            confidence=reply.confidence,
            is_crisis=reply.is_crisis,
            recommendations=reply.recommendations,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @classmethod
    async def history(
        cls, user_id: int, session_id: Optional[int] = None, limit: int = 50
    ) -> List[ChatMessageRead]:
        """Messages from the user's sessions, oldest first."""
        query = """
            SELECT m.* FROM ai_messages m JOIN ai_chat_sessions s ON s.id = m.session_id
            WHERE s.user_id = ?
        """
        params: list = [user_id]
        if session_id is not None:
            query += " AND s.id = ?"
            params.append(session_id)
        query += " ORDER BY m.id DESC LIMIT ?"
        params.append(limit)
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [
            ChatMessageRead(
                id=row["id"],
                session_id=row["session_id"],
                sender=row["sender"],
                content=row["content"],
                category=row["category"],
                confidence=row["confidence"],
                is_crisis=bool(row["is_crisis"]),
                helpful=None if row["helpful"] is None else bool(row["helpful"]),
                created_at=row["created_at"],
            )
            for row in reversed(rows)
        ]

    @classmethod
    async def sessions(cls, user_id: int) -> List[ChatSessionRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM ai_chat_sessions WHERE user_id = ? ORDER BY updated_at DESC, id DESC", (user_id,)
            ).fetchall()
        finally:
            conn.close()
        return [
            ChatSessionRead(
                id=row["id"],
                user_id=row["user_id"],
                language=row["language"],
                crisis_flag=bool(row["crisis_flag"]),
                message_count=row["message_count"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    @classmethod
    async def rate_message(cls, user_id: int, message_id: int, helpful: bool) -> None:
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT m.sender, s.user_id FROM ai_messages m JOIN ai_chat_sessions s ON s.id = m.session_id
                WHERE m.id = ?
                """,
                (message_id,),
            ).fetchone()
            if not row:
                raise ValueError(f"Message {message_id} not found")
            if row["user_id"] != user_id:
                raise ValueError("Not authorized to rate this message")
            if row["sender"] != "ai":
                raise ValueError("User messages cannot be rated, only AI replies")
            conn.execute("UPDATE ai_messages SET helpful = ? WHERE id = ?", (int(helpful), message_id))
            conn.commit()
        finally:
            conn.close()
