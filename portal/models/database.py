import sqlite3
import os
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
import logging

import config
from portal.errors import StoreError

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH


def get_db_path():
    """Get the database path and ensure the directory exists."""
    db_dir = os.path.dirname(DATABASE_PATH)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)
    return DATABASE_PATH


def new_id():
    return str(uuid.uuid4())


def utc_now():
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def get_db():
    """Context manager for database connections.

    Commits when the block finishes and rolls back everything written in the
    block if it raises. sqlite3 errors are re-raised as StoreError.
    """
    conn = None
    try:
        conn = sqlite3.connect(get_db_path())
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        if conn:
            conn.rollback()
        logger.error(f"Database error: {e}")
        raise StoreError(str(e)) from e
    except Exception:
        if conn:
            conn.rollback()
        raise
    finally:
        if conn:
            conn.close()


def init_db():
    """Initialize the database with all required tables."""
    with get_db() as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS profiles (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                full_name TEXT NOT NULL,
                department TEXT NOT NULL,
                user_role TEXT NOT NULL CHECK (user_role IN ('student', 'teacher')),
                student_id TEXT,
                position TEXT,
                password_hash TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_profiles_role
            ON profiles(user_role)
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS forms (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                due_date TEXT NOT NULL,
                created_by TEXT NOT NULL REFERENCES profiles(id),
                created_at TEXT NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS form_questions (
                id TEXT PRIMARY KEY,
                form_id TEXT NOT NULL REFERENCES forms(id) ON DELETE CASCADE,
                question_text TEXT NOT NULL,
                question_order INTEGER NOT NULL CHECK (question_order > 0),
                created_at TEXT NOT NULL,
                UNIQUE(form_id, question_order)
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS form_submissions (
                id TEXT PRIMARY KEY,
                form_id TEXT NOT NULL REFERENCES forms(id) ON DELETE CASCADE,
                student_id TEXT NOT NULL REFERENCES profiles(id),
                submitted_at TEXT NOT NULL,
                UNIQUE(form_id, student_id)
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_submissions_student
            ON form_submissions(student_id)
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS question_responses (
                id TEXT PRIMARY KEY,
                submission_id TEXT NOT NULL REFERENCES form_submissions(id) ON DELETE CASCADE,
                question_id TEXT NOT NULL REFERENCES form_questions(id) ON DELETE CASCADE,
                rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
                created_at TEXT NOT NULL,
                UNIQUE(submission_id, question_id)
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_responses_submission
            ON question_responses(submission_id)
        ''')

        logger.info("Database initialized successfully")
