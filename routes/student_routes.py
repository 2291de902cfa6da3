from flask import Blueprint, render_template, request, redirect, url_for, flash
import logging

from config import RATING_VALUES
from portal.errors import DuplicateSubmissionError, NotFoundError, StoreError, ValidationError
from portal.models.form import FeedbackForm
from portal.models.submission import Submission
from portal.services.aggregation import (
    compute_completion_stats, completion_percentage, completion_status, split_forms_by_status,
)
from portal.session import StudentProfile
from routes.guards import current_session, role_required
from utils import collect_ratings

logger = logging.getLogger(__name__)

student_bp = Blueprint('student', __name__, url_prefix='/student')


@student_bp.route('/')
@role_required(StudentProfile)
def dashboard():
    student = current_session().profile
    try:
        forms = FeedbackForm.list_forms()
        submissions = Submission.list_by_student(student.id)
    except StoreError as e:
        logger.error(f"Failed to load forms for {student.id}: {e}")
        flash("Failed to load your form statuses.", "danger")
        return render_template('student_dashboard.html', load_failed=True), 500

    completed, pending = split_forms_by_status(forms, submissions)
    stats = compute_completion_stats(len(forms), submissions)
    percentage = completion_percentage(stats)

    return render_template(
        'student_dashboard.html',
        load_failed=False,
        forms=completed + pending,
        completed=completed,
        pending=pending,
        stats=stats,
        percentage=percentage,
        status=completion_status(percentage),
        tab=request.args.get('tab', 'all'),
    )


@student_bp.route('/forms/<form_id>', methods=['GET', 'POST'])
@role_required(StudentProfile)
def fill_form(form_id):
    student = current_session().profile
    try:
        form = FeedbackForm.get(form_id)
        if not form:
            return render_template('not_found.html', what="Form"), 404
        questions = FeedbackForm.list_questions(form_id)
        already_submitted = Submission.exists(form_id, student.id)
    except StoreError as e:
        logger.error(f"Failed to load form {form_id}: {e}")
        flash("Could not load form data.", "danger")
        return redirect(url_for('student.dashboard'))

    if already_submitted:
        flash("You have already submitted this form.", "info")
        return redirect(url_for('student.dashboard'))

    if request.method == 'POST':
        try:
            responses = collect_ratings(questions, request.form)
        except ValidationError as e:
            flash(str(e), "danger")
            return render_template(
                'form_fill.html', form=form, questions=questions,
                ratings=RATING_VALUES, selected=request.form,
            ), 400

        try:
            Submission.submit_form(form_id, student.id, responses)
        except NotFoundError:
            return render_template('not_found.html', what="Form"), 404
        except DuplicateSubmissionError:
            flash("You have already submitted this form.", "info")
            return redirect(url_for('student.dashboard'))
        except ValidationError as e:
            flash(str(e), "danger")
            return redirect(url_for('student.dashboard'))
        except StoreError as e:
            logger.error(f"Failed to submit form {form_id} for {student.id}: {e}")
            flash("Failed to submit form.", "danger")
            return render_template(
                'form_fill.html', form=form, questions=questions,
                ratings=RATING_VALUES, selected=request.form,
            ), 500

        flash("Form submitted successfully.", "success")
        return redirect(url_for('student.dashboard'))

    return render_template(
        'form_fill.html', form=form, questions=questions, ratings=RATING_VALUES, selected={},
    )
