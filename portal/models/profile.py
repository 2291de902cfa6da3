import logging
import sqlite3
from werkzeug.security import generate_password_hash, check_password_hash

from config import ROLE_STUDENT, ROLE_TEACHER, ROLES
from portal.errors import AuthenticationError, ValidationError
from utils import normalize_email
from .database import get_db, new_id, utc_now

logger = logging.getLogger(__name__)

_PUBLIC_COLUMNS = 'id, email, full_name, department, user_role, student_id, position, created_at'


def _row_to_dict(row):
    return {
        'id': row['id'],
        'email': row['email'],
        'full_name': row['full_name'],
        'department': row['department'],
        'user_role': row['user_role'],
        'student_id': row['student_id'],
        'position': row['position'],
        'created_at': row['created_at'],
    }


class Profile:
    @staticmethod
    def create(email, password, full_name, department, user_role,
               student_id=None, position=None):
        """Create a profile and return it as a dict.

        Raises AuthenticationError if the email is already registered.
        """
        if user_role not in ROLES:
            raise ValidationError(f"Unknown role: {user_role}")
        email = normalize_email(email)
        profile_id = new_id()

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT 1 FROM profiles WHERE email = ?', (email,))
            if cursor.fetchone():
                raise AuthenticationError("An account with this email already exists")

            cursor.execute('''
                INSERT INTO profiles
                (id, email, full_name, department, user_role, student_id, position,
                 password_hash, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                profile_id,
                email,
                full_name.strip(),
                department.strip(),
                user_role,
                student_id if user_role == ROLE_STUDENT else None,
                position if user_role == ROLE_TEACHER else None,
                generate_password_hash(password),
                utc_now(),
            ))

        logger.info(f"Created {user_role} profile for {email}")
        return Profile.get(profile_id)

    @staticmethod
    def bulk_add_students(students, password):
        """Add multiple students at once.
        students: list of tuples (email, full_name, department, student_id)
        Returns: (added_count, duplicate_count, duplicates_list)
        """
        added = []
        duplicates = []
        password_hash = generate_password_hash(password)

        with get_db() as conn:
            cursor = conn.cursor()

            for email, full_name, department, student_id in students:
                email = normalize_email(email)
                cursor.execute('SELECT 1 FROM profiles WHERE email = ?', (email,))
                if cursor.fetchone():
                    duplicates.append(email)
                    continue
                try:
                    cursor.execute('''
                        INSERT INTO profiles
                        (id, email, full_name, department, user_role, student_id,
                         password_hash, created_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ''', (new_id(), email, full_name, department, ROLE_STUDENT,
                          student_id, password_hash, utc_now()))
                    added.append(email)
                except sqlite3.IntegrityError as e:
                    logger.error(f"Error adding student {email}: {e}")
                    duplicates.append(email)

        return len(added), len(duplicates), duplicates

    @staticmethod
    def get(user_id):
        """Get a profile by id, or None."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT {_PUBLIC_COLUMNS} FROM profiles WHERE id = ?', (user_id,))
            row = cursor.fetchone()
            return _row_to_dict(row) if row else None

    @staticmethod
    def authenticate(email, password):
        """Return the profile matching the credentials.

        Raises AuthenticationError on an unknown email or wrong password.
        """
        email = normalize_email(email)
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'SELECT {_PUBLIC_COLUMNS}, password_hash FROM profiles WHERE email = ?',
                (email,)
            )
            row = cursor.fetchone()

        if not row or not check_password_hash(row['password_hash'], password):
            logger.info(f"Failed sign-in for {email}")
            raise AuthenticationError("Invalid email or password")
        return _row_to_dict(row)

    @staticmethod
    def update(user_id, full_name, department, student_id=None, position=None):
        """Update the editable profile fields. Returns True if a row changed."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                UPDATE profiles
                SET full_name = ?, department = ?,
                    student_id = CASE WHEN user_role = 'student' THEN ? ELSE NULL END,
                    position = CASE WHEN user_role = 'teacher' THEN ? ELSE NULL END
                WHERE id = ?
            ''', (full_name.strip(), department.strip(), student_id, position, user_id))
            return cursor.rowcount > 0

    @staticmethod
    def list_students():
        """Get all students."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'''
                SELECT {_PUBLIC_COLUMNS}
                FROM profiles
                WHERE user_role = ?
                ORDER BY department, full_name
            ''', (ROLE_STUDENT,))
            return [_row_to_dict(row) for row in cursor.fetchall()]

    @staticmethod
    def count_students():
        """Get total number of students."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT COUNT(*) FROM profiles WHERE user_role = ?', (ROLE_STUDENT,))
            return cursor.fetchone()[0]
