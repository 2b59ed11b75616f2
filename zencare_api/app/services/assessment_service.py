"""
PHQ-9 and GAD-7 self-assessments.

Each questionnaire item is answered on a 0-3 scale and the score is
the sum of the answers.  Severity bands follow the published cut-offs.
A non-zero answer to PHQ-9 item 9 (thoughts of self-harm) flags the
assessment and raises a crisis alert regardless of the total score.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from zencare_api.app.core.db import get_connection, load_json
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_COUNSELLOR
from zencare_api.app.schemas.assessment import AssessmentRead, AssessmentResult, AssessmentSubmit
from zencare_api.app.services.crisis_alert_service import record_crisis_alert

logger = logging.getLogger(__name__)

ANSWER_OPTIONS = [
    {"value": 0, "text": "Not at all"},
    {"value": 1, "text": "Several days"},
    {"value": 2, "text": "More than half the days"},
    {"value": 3, "text": "Nearly every day"},
]

_PREFIX = "Over the last 2 weeks, how often have you been bothered by "

QUESTIONNAIRES: Dict[str, Dict[str, Any]] = {
    "phq9": {
        "title": "PHQ-9 Depression Screening",
        "items": [
            "little interest or pleasure in doing things?",
            "feeling down, depressed, or hopeless?",
            "trouble falling or staying asleep, or sleeping too much?",
            "feeling tired or having little energy?",
            "poor appetite or overeating?",
            "feeling bad about yourself or that you are a failure or have let yourself or your family down?",
            "trouble concentrating on things, such as reading the newspaper or watching television?",
            "moving or speaking so slowly that other people could have noticed? Or the opposite - being so "
            "fidgety or restless that you have been moving around a lot more than usual?",
            "thoughts that you would be better off dead, or of hurting yourself?",
        ],
        "bands": [(4, "minimal"), (9, "mild"), (14, "moderate"), (19, "moderately_severe"), (27, "severe")],
    },
    "gad7": {
        "title": "GAD-7 Anxiety Screening",
        "items": [
            "feeling nervous, anxious, or on edge?",
            "not being able to stop or control worrying?",
            "worrying too much about different things?",
            "trouble relaxing?",
            "being so restless that it is hard to sit still?",
            "becoming easily annoyed or irritable?",
            "feeling afraid, as if something awful might happen?",
        ],
        "bands": [(4, "minimal"), (9, "mild"), (14, "moderate"), (21, "severe")],
    },
}

INTERPRETATIONS = {
    ("phq9", "minimal"): "Minimal depression symptoms. You appear to be experiencing very few symptoms of depression.",
    ("phq9", "mild"): "Mild depression symptoms. You may be experiencing some symptoms that could benefit from attention.",
    ("phq9", "moderate"): "Moderate depression symptoms. Your symptoms are significant and may be impacting your daily life.",
    ("phq9", "moderately_severe"): (
        "Moderately severe depression symptoms. Your symptoms are quite significant and likely affecting "
        "multiple areas of your life."
    ),
    ("phq9", "severe"): (
        "Severe depression symptoms. You are experiencing significant symptoms that require immediate "
        "professional attention."
    ),
    ("gad7", "minimal"): "Minimal anxiety symptoms. You appear to be experiencing very few symptoms of anxiety.",
    ("gad7", "mild"): "Mild anxiety symptoms. You may be experiencing some anxiety that could benefit from attention.",
    ("gad7", "moderate"): (
        "Moderate anxiety symptoms. Your anxiety levels are significant and may be impacting your daily functioning."
    ),
    ("gad7", "severe"): (
        "Severe anxiety symptoms. You are experiencing significant anxiety that likely requires professional attention."
    ),
}

RECOMMENDATIONS = {
    ("phq9", "minimal"): [
        "Continue with your current self-care practices",
        "Maintain regular exercise and healthy sleep habits",
        "Stay connected with friends and family",
    ],
    ("phq9", "mild"): [
        "Consider talking to a counsellor or therapist",
        "Increase physical activity and outdoor time",
        "Monitor your symptoms and seek help if they worsen",
    ],
    ("phq9", "moderate"): [
        "Strongly consider professional counselling or therapy",
        "Speak with a healthcare provider about your symptoms",
        "Avoid alcohol and drugs as coping mechanisms",
    ],
    ("phq9", "moderately_severe"): [
        "Seek professional help from a mental health provider immediately",
        "Inform trusted friends or family about your situation",
        "Create a safety plan with professional guidance",
    ],
    ("phq9", "severe"): [
        "Seek immediate professional help from a mental health provider",
        "Contact your doctor or a mental health crisis line",
        "If you have thoughts of self-harm, seek emergency help immediately",
    ],
    ("gad7", "minimal"): [
        "Continue with your current stress management practices",
        "Practice deep breathing or mindfulness when stressed",
    ],
    ("gad7", "mild"): [
        "Learn and practice relaxation techniques",
        "Limit caffeine and alcohol intake",
    ],
    ("gad7", "moderate"): [
        "Consider speaking with a counsellor or therapist",
        "Learn cognitive-behavioral techniques for managing anxiety",
    ],
    ("gad7", "severe"): [
        "Seek professional help from a mental health provider",
        "Consider both therapy and medication options with a doctor",
        "Avoid self-medicating with alcohol or drugs",
    ],
}

COPING_STRATEGIES = {
    "minimal": ["Regular physical activity", "Progressive muscle relaxation", "Keep a gratitude journal"],
    "mild": ["Deep breathing exercises", "Mindfulness meditation", "Regular sleep schedule", "Limit news and social media"],
    "moderate": ["Cognitive restructuring techniques", "Scheduled worry time", "Regular therapy sessions"],
    "moderately_severe": ["Daily structured routine", "Regular therapy sessions", "Share a safety plan with someone you trust"],
    "severe": ["Professional crisis management plan", "Medication compliance if prescribed", "Emergency contact list"],
}

EMERGENCY_RESOURCES = {
    "suicide_lifeline": "988",
    "crisis_text_line": "Text HOME to 741741",
    "emergency": "112 / 911",
}

SELF_HARM_ITEM = 8  # zero-based index of PHQ-9 item 9


def questionnaire(assessment_type: str) -> Dict[str, Any]:
    if assessment_type not in QUESTIONNAIRES:
        raise ValueError(f"Assessment type '{assessment_type}' not found")
    form = QUESTIONNAIRES[assessment_type]
    return {
        "type": assessment_type,
        "title": form["title"],
        "questions": [
            {"id": index + 1, "text": _PREFIX + item, "options": ANSWER_OPTIONS}
            for index, item in enumerate(form["items"])
        ],
    }


def score_assessment(assessment_type: str, answers: List[int]) -> Tuple[int, str, bool]:
    """Validate ``answers`` and return ``(score, severity, crisis_flag)``."""
    if assessment_type not in QUESTIONNAIRES:
        raise ValueError(f"Assessment type '{assessment_type}' not found")
    form = QUESTIONNAIRES[assessment_type]
    if len(answers) != len(form["items"]):
        raise ValueError(f"{assessment_type} expects {len(form['items'])} answers, got {len(answers)}")
    if any(answer not in (0, 1, 2, 3) for answer in answers):
        raise ValueError("Each answer must be between 0 and 3")
    score = sum(answers)
    severity = next(label for upper, label in form["bands"] if score <= upper)
    crisis_flag = assessment_type == "phq9" and answers[SELF_HARM_ITEM] > 0
    return score, severity, crisis_flag


def _row_to_assessment(row: sqlite3.Row) -> AssessmentRead:
    return AssessmentRead(
        id=row["id"],
        student_id=row["student_id"],
        type=row["type"],
        answers=load_json(row["answers"], []),
        score=row["score"],
        severity=row["severity"],
        crisis_flag=bool(row["crisis_flag"]),
        created_at=row["created_at"],
    )


def build_result(record: AssessmentRead) -> AssessmentResult:
    recommendations = list(RECOMMENDATIONS[(record.type, record.severity)])
    if record.crisis_flag:
        recommendations.insert(
            0,
            "IMPORTANT: You indicated thoughts of self-harm. Please contact a crisis helpline or emergency services immediately.",
        )
    needs_emergency = record.crisis_flag or record.severity == "severe"
    return AssessmentResult(
        **record.model_dump(),
        interpretation=INTERPRETATIONS[(record.type, record.severity)],
        recommendations=recommendations,
        coping_strategies=COPING_STRATEGIES[record.severity],
        emergency_resources=dict(EMERGENCY_RESOURCES) if needs_emergency else None,
    )


class AssessmentService:

    @classmethod
    async def submit(cls, student_id: int, data: AssessmentSubmit) -> AssessmentResult:
        score, severity, crisis_flag = score_assessment(data.type, data.answers)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO assessments (student_id, type, answers, score, severity, crisis_flag)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (student_id, data.type, json.dumps(data.answers), score, severity, int(crisis_flag)),
            )
            assessment_id = cursor.lastrowid
            if crisis_flag:
                record_crisis_alert(
                    cursor,
                    student_id,
                    "phq9_assessment",
                    f"PHQ-9 item 9 answered {data.answers[SELF_HARM_ITEM]} (score {score}, {severity})",
                )
            conn.commit()
            row = cursor.execute("SELECT * FROM assessments WHERE id = ?", (assessment_id,)).fetchone()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to store %s assessment for %s: %s", data.type, student_id, e)
            raise
        finally:
            conn.close()
        logger.info("Student %s completed %s: score %s (%s)", student_id, data.type, score, severity)
        return build_result(_row_to_assessment(row))

    @classmethod
    async def list_for_student(
        cls, student_id: int, assessment_type: Optional[str] = None, requester: Optional[Dict[str, Any]] = None
    ) -> List[AssessmentRead]:
        """A student's assessments, newest first.

        Besides the student, admins and counsellors who have an
        appointment with the student may read them.
        """
        conn = get_connection()
        try:
            if requester is not None and requester.get("user_id") != student_id:
                role_id = requester.get("role_id")
                allowed = role_id == ROLE_ADMIN or (
                    role_id == ROLE_COUNSELLOR
                    and conn.execute(
                        "SELECT 1 FROM appointments WHERE counsellor_id = ? AND student_id = ? LIMIT 1",
                        (requester.get("user_id"), student_id),
                    ).fetchone()
                    is not None
                )
                if not allowed:
                    raise ValueError("Not authorized to view this student's assessments")
            query = "SELECT * FROM assessments WHERE student_id = ?"
            params: list = [student_id]
            if assessment_type:
                query += " AND type = ?"
                params.append(assessment_type)
            query += " ORDER BY created_at DESC, id DESC"
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_assessment(row) for row in rows]

    @classmethod
    async def latest(cls, student_id: int) -> Dict[str, Optional[AssessmentRead]]:
        """Most recent result per questionnaire type."""
        conn = get_connection()
        try:
            latest: Dict[str, Optional[AssessmentRead]] = {}
            for assessment_type in QUESTIONNAIRES:
                row = conn.execute(
                    "SELECT * FROM assessments WHERE student_id = ? AND type = ? ORDER BY created_at DESC, id DESC LIMIT 1",
                    (student_id, assessment_type),
                ).fetchone()
                latest[assessment_type] = _row_to_assessment(row) if row else None
        finally:
            conn.close()
        return latest
