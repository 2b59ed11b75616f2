#!/usr/bin/env python3
"""
Provision sample ZenCare accounts and data.

Creates (only when missing) a demo college, a system admin, a college
head, two approved counsellors with profiles and weekly schedules, and
a student, plus a handful of self-help resources.  Running the script
again leaves existing rows untouched.

Usage:
    python seed_demo_data.py --db ./zencare.db [--password "DemoPass!234"]
"""

import argparse
import json
import logging
import os

from zencare_api.app.core.config import settings
from zencare_api.app.core.db import get_connection, init_db
from zencare_api.app.core.logging_config import setup_logging
from zencare_api.app.core.security import (
    ROLE_ADMIN,
    ROLE_COLLEGE_HEAD,
    ROLE_COUNSELLOR,
    ROLE_NAMES,
    ROLE_STUDENT,
    hash_password,
)
from zencare_api.app.services.college_service import CollegeService
from zencare_api.app.services.user_service import insert_counsellor_profile

logger = logging.getLogger("seed_demo_data")

WEEKDAY_SLOTS = ["09:00", "10:00", "11:00", "14:00", "15:00", "16:00"]

DEMO_SCHEDULE = {
    "sunday": {"available": False, "slots": []},
    "monday": {"available": True, "slots": WEEKDAY_SLOTS},
    "tuesday": {"available": True, "slots": WEEKDAY_SLOTS},
    "wednesday": {"available": True, "slots": WEEKDAY_SLOTS},
    "thursday": {"available": True, "slots": WEEKDAY_SLOTS},
    "friday": {"available": True, "slots": WEEKDAY_SLOTS[:3]},
    "saturday": {"available": True, "slots": ["10:00", "11:00"]},
}

ACCOUNTS = [
    {"email": "admin@zencare.example", "name": "System Admin", "role_id": ROLE_ADMIN},
    {"email": "head@demo-college.example", "name": "Dr. Meera Rao", "role_id": ROLE_COLLEGE_HEAD},
    {
        "email": "priya.counsellor@demo-college.example",
        "name": "Priya Sharma",
        "role_id": ROLE_COUNSELLOR,
        "profile": {
            "specializations": ["Anxiety", "Academic Stress"],
            "languages": ["English", "Hindi"],
            "qualifications": ["M.Phil Clinical Psychology"],
            "experience": "6 years",
            "session_modes": ["video", "audio", "chat"],
        },
    },
    {
        "email": "arjun.counsellor@demo-college.example",
        "name": "Arjun Reddy",
        "role_id": ROLE_COUNSELLOR,
        "profile": {
            "specializations": ["Depression", "Relationships"],
            "languages": ["English", "Telugu"],
            "qualifications": ["MA Counselling Psychology"],
            "experience": "4 years",
            "session_modes": ["video", "in_person"],
        },
    },
    {"email": "student@demo-college.example", "name": "Rahul Verma", "role_id": ROLE_STUDENT},
]

RESOURCES = [
    {
        "title": "Managing Anxiety in College",
        "description": "Learn effective techniques to manage anxiety during your college years",
        "type": "article",
        "category": "anxiety",
        "duration": 5,
        "difficulty": "beginner",
        "tags": ["anxiety", "college", "stress"],
        "is_featured": 1,
        "featured_order": 1,
    },
    {
        "title": "Mindfulness Meditation for Students",
        "description": "10-minute guided meditation for stress relief",
        "type": "audio",
        "category": "mindfulness",
        "duration": 10,
        "difficulty": "beginner",
        "tags": ["meditation", "mindfulness", "relaxation"],
        "is_featured": 1,
        "featured_order": 2,
    },
    {
        "title": "Understanding Depression",
        "description": "Educational video about depression symptoms and treatment",
        "type": "video",
        "category": "depression",
        "duration": 15,
        "difficulty": "intermediate",
        "tags": ["depression", "mental health", "education"],
    },
    {
        "title": "Study Stress Management",
        "description": "Comprehensive guide to managing academic stress",
        "type": "pdf",
        "category": "stress",
        "duration": 20,
        "difficulty": "intermediate",
        "tags": ["stress", "academic", "study tips"],
    },
    {
        "title": "Breathing Bubble Game",
        "description": "Interactive breathing exercise to reduce anxiety and stress",
        "type": "game",
        "category": "games",
        "duration": 5,
        "difficulty": "beginner",
        "tags": ["breathing", "anxiety", "game"],
    },
]


def seed(password: str) -> list:
    """Create the demo rows; returns ``(email, role, created)`` per account."""
    init_db()
    results = []
    conn = get_connection()
    try:
        cursor = conn.cursor()
        college_id = CollegeService.create_college(
            cursor, "Demo College of Engineering", code="DCE001", address="Hyderabad", type="engineering"
        )
        for account in ACCOUNTS:
            existing = cursor.execute("SELECT id FROM users WHERE email = ?", (account["email"],)).fetchone()
            if existing:
                results.append((account["email"], ROLE_NAMES[account["role_id"]], False))
                continue
            cursor.execute(
                """
                INSERT INTO users (email, name, password, role_id, approved, college_id, university)
                VALUES (?, ?, ?, ?, 1, ?, ?)
                """,
                (
                    account["email"],
                    account["name"],
                    hash_password(password),
                    account["role_id"],
                    None if account["role_id"] == ROLE_ADMIN else college_id,
                    None if account["role_id"] == ROLE_ADMIN else "Demo University",
                ),
            )
            user_id = cursor.lastrowid
            if account["role_id"] == ROLE_COUNSELLOR:
                cursor.execute("UPDATE users SET approved_at = CURRENT_TIMESTAMP WHERE id = ?", (user_id,))
                insert_counsellor_profile(
                    cursor,
                    user_id,
                    approved=True,
                    schedule=DEMO_SCHEDULE,
                    **account["profile"],
                )
            results.append((account["email"], ROLE_NAMES[account["role_id"]], True))
        for resource in RESOURCES:
            if cursor.execute("SELECT 1 FROM resources WHERE title = ?", (resource["title"],)).fetchone():
                continue
            cursor.execute(
                """
                INSERT INTO resources (title, description, type, category, duration, difficulty, tags,
                                       is_featured, featured_order)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    resource["title"],
                    resource["description"],
                    resource["type"],
                    resource["category"],
                    resource["duration"],
                    resource["difficulty"],
                    json.dumps(resource["tags"]),
                    resource.get("is_featured", 0),
                    resource.get("featured_order"),
                ),
            )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    return results


def main():
    ap = argparse.ArgumentParser(description="Seed ZenCare demo accounts (SQLite).")
    ap.add_argument("--db", required=True, help="Path to SQLite DB file; created if missing")
    ap.add_argument("--password", default="ZenCare!2024", help="Password for every created account")
    args = ap.parse_args()

    setup_logging(settings.log_level)
    settings.database_url = os.path.abspath(args.db)
    for email, role, created in seed(args.password):
        state = "created" if created else "exists "
        print(f"[{'+' if created else '='}] {state} {role:<13} {email}")
    logger.info("Demo data ready in %s", settings.database_url)


if __name__ == "__main__":
    main()
