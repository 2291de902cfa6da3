"""
Utils module - input normalization and validation shared by the routes
"""
import logging
from datetime import datetime, date

from config import ALLOWED_EXTENSIONS, DATE_FORMAT, RATING_VALUES
from portal.errors import ValidationError

logger = logging.getLogger(__name__)


def normalize_email(email):
    """Normalize an email address for storage and lookup."""
    return (email or '').strip().lower()


def allowed_file(filename):
    """Check if file has an allowed extension."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def parse_due_date(value, today=None, allow_past=False):
    """
    Parse a YYYY-MM-DD due date. Dates in the past are rejected unless
    allow_past is set.
    """
    if not value or not value.strip():
        raise ValidationError("Due date is required")
    try:
        due = datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError("Due date must be in YYYY-MM-DD format")

    if not allow_past and due < (today or date.today()):
        raise ValidationError("Due date cannot be in the past")
    return due.strftime(DATE_FORMAT)


def clean_question_texts(texts):
    """Strip question texts and drop empty boxes; at least one must remain."""
    cleaned = [t.strip() for t in texts if t and t.strip()]
    if not cleaned:
        raise ValidationError("Please add at least one question")
    return cleaned


def validate_form_fields(title, description, due_date, today=None, current_due_date=None):
    """
    Validate the form header fields.

    When editing, current_due_date is the stored due date; keeping it is
    allowed even after it has passed.

    Returns a dict with title, description and due_date ready for storage.
    """
    title = (title or '').strip()
    if not title:
        raise ValidationError("Please fill in all required fields")
    return {
        'title': title,
        'description': (description or '').strip(),
        'due_date': parse_due_date(
            due_date, today=today,
            allow_past=current_due_date is not None and (due_date or '').strip() == current_due_date,
        ),
    }


def collect_ratings(questions, form_data):
    """
    Read one rating per question from submitted form data.

    form_data keys are "rating-<question id>". Every question must be answered
    with a whole number on the rating scale.
    Returns a list of {question_id, rating} dicts in question order.
    """
    responses = []
    for question in questions:
        value = form_data.get(f"rating-{question['id']}")
        if not value:
            raise ValidationError("Please answer all questions before submitting")
        try:
            rating = int(value)
        except ValueError:
            raise ValidationError(f"Invalid rating value for question {question['question_order']}")
        if rating not in RATING_VALUES:
            raise ValidationError(f"Ratings must be between {RATING_VALUES[0]} and {RATING_VALUES[-1]}")
        responses.append({'question_id': question['id'], 'rating': rating})
    return responses
