"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), applying migrations on application start
(``init_db``) and a cursor context manager.  SQLite is used as a
lightweight embedded database; list- and mapping-valued fields
(schedules, languages, answers, ...) are stored as JSON text.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import json
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from .config import settings


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` objects so columns can be
    accessed by name.  Foreign key enforcement is switched on for the
    lifetime of the connection because SQLite disables it by default.
    """
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


def utc_now() -> str:
    """Current UTC time in the same format as SQLite's ``CURRENT_TIMESTAMP``."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def load_json(raw: Any, default: Any = None) -> Any:
    """Decode a JSON text column, returning ``default`` for NULL or bad data."""
    if raw in (None, ""):
        return default
    try:
        return json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return default


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: accounts, colleges and registration workflows
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS roles (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        );

        CREATE TABLE IF NOT EXISTS colleges (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            code TEXT UNIQUE,
            address TEXT,
            type TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            name TEXT,
            password TEXT,
            role_id INTEGER NOT NULL,
            approved INTEGER NOT NULL DEFAULT 0,
            blocked INTEGER NOT NULL DEFAULT 0,
            block_reason TEXT,
            college_id INTEGER,
            university TEXT,
            phone TEXT,
            approved_at TIMESTAMP,
            approved_by INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(role_id) REFERENCES roles(id),
            FOREIGN KEY(college_id) REFERENCES colleges(id)
        );

        CREATE TABLE IF NOT EXISTS counsellor_profiles (
            user_id INTEGER PRIMARY KEY,
            specializations TEXT,
            languages TEXT,
            qualifications TEXT,
            experience TEXT,
            bio TEXT,
            session_modes TEXT,
            session_duration INTEGER,
            instant_booking INTEGER NOT NULL DEFAULT 0,
            emergency_available INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1,
            approved INTEGER NOT NULL DEFAULT 0,
            schedule TEXT,
            rating REAL NOT NULL DEFAULT 0,
            total_reviews INTEGER NOT NULL DEFAULT 0,
            last_booking_at TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS counsellor_requests (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            password TEXT,
            phone TEXT,
            specialization TEXT NOT NULL,
            experience TEXT NOT NULL,
            qualifications TEXT,
            languages TEXT,
            college_id INTEGER NOT NULL,
            id_proof_type TEXT,
            id_proof_url TEXT,
            status TEXT NOT NULL DEFAULT 'pending',
            processed_by INTEGER,
            processed_at TIMESTAMP,
            admin_notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(college_id) REFERENCES colleges(id)
        );

        CREATE TABLE IF NOT EXISTS college_head_requests (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            password TEXT,
            phone TEXT,
            position TEXT,
            college_name TEXT NOT NULL,
            college_code TEXT,
            college_address TEXT,
            college_type TEXT,
            status TEXT NOT NULL DEFAULT 'pending',
            processed_by INTEGER,
            processed_at TIMESTAMP,
            admin_notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS notifications (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            email TEXT,
            role_id INTEGER,
            type TEXT NOT NULL,
            title TEXT NOT NULL,
            message TEXT NOT NULL,
            data TEXT,
            read INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT
        );
        """,
    ),
    # Migration 2: appointments, feedback, reports and assessments
    (
        2,
        """
        CREATE TABLE IF NOT EXISTS appointments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            student_id INTEGER NOT NULL,
            counsellor_id INTEGER NOT NULL,
            scheduled_at TEXT NOT NULL,
            duration INTEGER NOT NULL,
            session_type TEXT NOT NULL,
            session_mode TEXT NOT NULL,
            student_notes TEXT,
            is_emergency INTEGER NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'pending',
            counsellor_notes TEXT,
            cancellation_reason TEXT,
            cancelled_at TIMESTAMP,
            booked_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(student_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY(counsellor_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS feedback (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            counsellor_id INTEGER NOT NULL,
            student_id INTEGER NOT NULL,
            appointment_id INTEGER UNIQUE,
            rating INTEGER NOT NULL,
            comment TEXT,
            anonymous INTEGER NOT NULL DEFAULT 1,
            helpful INTEGER NOT NULL DEFAULT 0,
            reported INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(counsellor_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY(student_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY(appointment_id) REFERENCES appointments(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS reports (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reporter_id INTEGER,
            reported_id INTEGER NOT NULL,
            type TEXT NOT NULL,
            reason TEXT NOT NULL,
            session_id TEXT,
            evidence TEXT,
            priority TEXT NOT NULL DEFAULT 'medium',
            status TEXT NOT NULL DEFAULT 'open',
            admin_notes TEXT,
            handled_by INTEGER,
            handled_at TIMESTAMP,
            withdraw_reason TEXT,
            withdrawn_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(reporter_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY(reported_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS assessments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            student_id INTEGER NOT NULL,
            type TEXT NOT NULL,
            answers TEXT NOT NULL,
            score INTEGER NOT NULL,
            severity TEXT NOT NULL,
            crisis_flag INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(student_id) REFERENCES users(id) ON DELETE CASCADE
        );
        """,
    ),
    # Migration 3: AI chat sessions and crisis alerts
    (
        3,
        """
        CREATE TABLE IF NOT EXISTS ai_chat_sessions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            language TEXT NOT NULL DEFAULT 'en',
            crisis_flag INTEGER NOT NULL DEFAULT 0,
            message_count INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS ai_messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            session_id INTEGER NOT NULL,
            sender TEXT NOT NULL,
            content TEXT NOT NULL,
            category TEXT,
            confidence REAL,
            is_crisis INTEGER NOT NULL DEFAULT 0,
            helpful INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(session_id) REFERENCES ai_chat_sessions(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS crisis_alerts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            session_id INTEGER,
            source TEXT NOT NULL,
            message TEXT,
            matched_keywords TEXT,
            status TEXT NOT NULL DEFAULT 'active',
            resolved_by INTEGER,
            resolved_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );
        """,
    ),
    # Migration 4: lookup indices
    (
        4,
        """
        CREATE INDEX IF NOT EXISTS idx_users_role ON users(role_id);
        CREATE INDEX IF NOT EXISTS idx_users_college ON users(college_id);
        CREATE INDEX IF NOT EXISTS idx_appointments_counsellor ON appointments(counsellor_id, scheduled_at);
        CREATE INDEX IF NOT EXISTS idx_appointments_student ON appointments(student_id);
        CREATE INDEX IF NOT EXISTS idx_feedback_counsellor ON feedback(counsellor_id);
        CREATE INDEX IF NOT EXISTS idx_reports_reported ON reports(reported_id);
        CREATE INDEX IF NOT EXISTS idx_reports_reporter ON reports(reporter_id);
        CREATE INDEX IF NOT EXISTS idx_assessments_student ON assessments(student_id, type);
        CREATE INDEX IF NOT EXISTS idx_ai_messages_session ON ai_messages(session_id);
        CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id);
        """,
    ),
    # Migration 5: self-help resource hub
    (
        5,
        """
        CREATE TABLE IF NOT EXISTS resources (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT,
            content TEXT,
            type TEXT NOT NULL,
            language TEXT NOT NULL DEFAULT 'en',
            category TEXT NOT NULL,
            difficulty TEXT,
            url TEXT,
            thumbnail_url TEXT,
            duration INTEGER,
            tags TEXT,
            rating REAL NOT NULL DEFAULT 0,
            view_count INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1,
            is_featured INTEGER NOT NULL DEFAULT 0,
            featured_order INTEGER,
            last_viewed_at TIMESTAMP,
            created_by INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(created_by) REFERENCES users(id) ON DELETE SET NULL
        );

        CREATE INDEX IF NOT EXISTS idx_resources_category ON resources(category, language);
        """,
    ),
]


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version and applies any newer entries from
    ``MIGRATIONS`` in order.  The fixed roles are inserted on every run.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version

        for role_id, name in ((1, "admin"), (2, "college_head"), (3, "counsellor"), (4, "student")):
            cursor.execute(
                "INSERT OR IGNORE INTO roles (id, name) VALUES (?, ?)", (role_id, name)
            )
