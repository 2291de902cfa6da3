import logging

from portal.errors import NotFoundError
from .database import get_db, new_id, utc_now

logger = logging.getLogger(__name__)


def _form_to_dict(row):
    return {
        'id': row['id'],
        'title': row['title'],
        'description': row['description'],
        'due_date': row['due_date'],
        'created_by': row['created_by'],
        'created_at': row['created_at'],
    }


def _question_to_dict(row):
    return {
        'id': row['id'],
        'form_id': row['form_id'],
        'question_text': row['question_text'],
        'question_order': row['question_order'],
        'created_at': row['created_at'],
    }


def _insert_questions(cursor, form_id, question_texts, start_order=1):
    questions = []
    for order, text in enumerate(question_texts, start_order):
        question = {
            'id': new_id(),
            'form_id': form_id,
            'question_text': text,
            'question_order': order,
            'created_at': utc_now(),
        }
        cursor.execute('''
            INSERT INTO form_questions (id, form_id, question_text, question_order, created_at)
            VALUES (?, ?, ?, ?, ?)
        ''', (question['id'], form_id, text, order, question['created_at']))
        questions.append(question)
    return questions


class FeedbackForm:
    @staticmethod
    def list_forms():
        """All forms, soonest due date first."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT id, title, description, due_date, created_by, created_at
                FROM forms
                ORDER BY due_date, created_at
            ''')
            return [_form_to_dict(row) for row in cursor.fetchall()]

    @staticmethod
    def get(form_id):
        """Get a form by id, or None."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT id, title, description, due_date, created_by, created_at
                FROM forms WHERE id = ?
            ''', (form_id,))
            row = cursor.fetchone()
            return _form_to_dict(row) if row else None

    @staticmethod
    def create(fields, question_texts):
        """Create a form together with its questions in one transaction.

        fields: dict with title, description, due_date, created_by
        question_texts: list of question strings, numbered from 1 in order
        Returns: (form_dict, questions_list)
        """
        form = {
            'id': new_id(),
            'title': fields['title'],
            'description': fields.get('description') or None,
            'due_date': fields['due_date'],
            'created_by': fields['created_by'],
            'created_at': utc_now(),
        }

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO forms (id, title, description, due_date, created_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (form['id'], form['title'], form['description'], form['due_date'],
                  form['created_by'], form['created_at']))
            questions = _insert_questions(cursor, form['id'], question_texts)

        logger.info(f"Created form '{form['title']}' with {len(questions)} questions")
        return form, questions

    @staticmethod
    def update(form_id, teacher_id, fields):
        """Update title, description and due date of a form owned by teacher_id."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                UPDATE forms
                SET title = ?, description = ?, due_date = ?
                WHERE id = ? AND created_by = ?
            ''', (fields['title'], fields.get('description') or None, fields['due_date'],
                  form_id, teacher_id))
            if cursor.rowcount == 0:
                raise NotFoundError("Form not found")
        logger.info(f"Updated form {form_id}")

    @staticmethod
    def delete(form_id, teacher_id):
        """Delete a form owned by teacher_id. Questions, submissions and responses cascade."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM forms WHERE id = ? AND created_by = ?', (form_id, teacher_id))
            if cursor.rowcount == 0:
                raise NotFoundError("Form not found")
        logger.info(f"Deleted form {form_id}")

    @staticmethod
    def list_questions(form_id):
        """Questions of a form ordered by question_order."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT id, form_id, question_text, question_order, created_at
                FROM form_questions
                WHERE form_id = ?
                ORDER BY question_order
            ''', (form_id,))
            return [_question_to_dict(row) for row in cursor.fetchall()]

    @staticmethod
    def create_questions(form_id, question_texts):
        """Append questions to an existing form, continuing its numbering."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT 1 FROM forms WHERE id = ?', (form_id,))
            if not cursor.fetchone():
                raise NotFoundError("Form not found")
            cursor.execute(
                'SELECT COALESCE(MAX(question_order), 0) FROM form_questions WHERE form_id = ?',
                (form_id,)
            )
            last_order = cursor.fetchone()[0]
            return _insert_questions(cursor, form_id, question_texts, last_order + 1)
