import logging
import sqlite3

from portal.errors import DuplicateSubmissionError, NotFoundError, ValidationError
from .database import get_db, new_id, utc_now

logger = logging.getLogger(__name__)


def _submission_to_dict(row):
    return {
        'id': row['id'],
        'form_id': row['form_id'],
        'student_id': row['student_id'],
        'submitted_at': row['submitted_at'],
    }


def _already_submitted(cursor, form_id, student_id):
    cursor.execute('''
        SELECT 1 FROM form_submissions
        WHERE form_id = ? AND student_id = ?
    ''', (form_id, student_id))
    return cursor.fetchone() is not None


class Submission:
    @staticmethod
    def list_by_form(form_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT id, form_id, student_id, submitted_at
                FROM form_submissions
                WHERE form_id = ?
                ORDER BY submitted_at
            ''', (form_id,))
            return [_submission_to_dict(row) for row in cursor.fetchall()]

    @staticmethod
    def list_by_student(student_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT id, form_id, student_id, submitted_at
                FROM form_submissions
                WHERE student_id = ?
                ORDER BY submitted_at
            ''', (student_id,))
            return [_submission_to_dict(row) for row in cursor.fetchall()]

    @staticmethod
    def exists(form_id, student_id):
        """Check if the student has already submitted the form."""
        with get_db() as conn:
            cursor = conn.cursor()
            return _already_submitted(cursor, form_id, student_id)

    @staticmethod
    def submit_form(form_id, student_id, responses):
        """Record a student's answers to a form.

        responses: list of dicts with question_id and rating

        The submission row and every response row are written in a single
        transaction, so a failed response insert leaves no submission behind.
        Every question on the form must be answered exactly once.
        Raises DuplicateSubmissionError if the student already submitted,
        NotFoundError if the form is gone, ValidationError if the responses
        do not match the form's questions.
        """
        submission_id = new_id()
        submitted_at = utc_now()

        with get_db() as conn:
            cursor = conn.cursor()

            cursor.execute('SELECT 1 FROM forms WHERE id = ?', (form_id,))
            if not cursor.fetchone():
                raise NotFoundError("Form not found")

            if _already_submitted(cursor, form_id, student_id):
                raise DuplicateSubmissionError("You have already submitted this form")

            cursor.execute('SELECT id FROM form_questions WHERE form_id = ?', (form_id,))
            question_ids = {row[0] for row in cursor.fetchall()}
            answered = [r['question_id'] for r in responses]
            if any(qid not in question_ids for qid in answered):
                raise ValidationError("Response references a question that is not on this form")
            if not answered:
                raise ValidationError("A submission needs at least one response")
            if len(set(answered)) != len(answered):
                raise ValidationError("Each question can only be answered once")
            if set(answered) != question_ids:
                raise ValidationError("Please answer all questions before submitting")

            try:
                cursor.execute('''
                    INSERT INTO form_submissions (id, form_id, student_id, submitted_at)
                    VALUES (?, ?, ?, ?)
                ''', (submission_id, form_id, student_id, submitted_at))
            except sqlite3.IntegrityError as e:
                # another submit for the same student landed after the check above
                if 'UNIQUE' not in str(e):
                    raise
                raise DuplicateSubmissionError("You have already submitted this form") from e

            cursor.executemany('''
                INSERT INTO question_responses (id, submission_id, question_id, rating, created_at)
                VALUES (?, ?, ?, ?, ?)
            ''', [
                (new_id(), submission_id, r['question_id'], int(r['rating']), submitted_at)
                for r in responses
            ])

        logger.info(f"Student {student_id} submitted form {form_id} ({len(responses)} responses)")
        return {
            'id': submission_id,
            'form_id': form_id,
            'student_id': student_id,
            'submitted_at': submitted_at,
        }

    @staticmethod
    def list_responses_for_form(form_id):
        """Response rows joined with question text and submission metadata."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT r.id, r.submission_id, r.question_id, r.rating,
                       q.question_text, q.question_order,
                       s.student_id, s.submitted_at
                FROM question_responses r
                JOIN form_questions q ON q.id = r.question_id
                JOIN form_submissions s ON s.id = r.submission_id
                WHERE s.form_id = ?
                ORDER BY s.submitted_at, q.question_order
            ''', (form_id,))

            return [{
                'id': row['id'],
                'submission_id': row['submission_id'],
                'question_id': row['question_id'],
                'rating': row['rating'],
                'question_text': row['question_text'],
                'question_order': row['question_order'],
                'student_id': row['student_id'],
                'submitted_at': row['submitted_at'],
            } for row in cursor.fetchall()]
