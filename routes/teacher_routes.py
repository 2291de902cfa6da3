from flask import Blueprint, render_template, request, redirect, url_for, flash, make_response
from werkzeug.utils import secure_filename
import os
import logging

from config import UPLOAD_FOLDER, MAX_FILE_SIZE
from portal.errors import NotFoundError, StoreError, ValidationError
from portal.models.form import FeedbackForm
from portal.models.profile import Profile
from portal.models.submission import Submission
from portal.services.aggregation import (
    build_histogram, combine_completion_stats, compute_completion_stats,
    compute_question_stats, completion_percentage, completion_status,
    pending_students, summarize_submissions,
)
from portal.services.chart_service import histogram_data_uri, render_histogram_png
from portal.services.roster_service import process_roster_excel
from portal.session import TeacherProfile
from routes.guards import current_session, role_required
from utils import allowed_file, clean_question_texts, validate_form_fields

logger = logging.getLogger(__name__)

teacher_bp = Blueprint('teacher', __name__, url_prefix='/teacher')


@teacher_bp.route('/')
@role_required(TeacherProfile)
def dashboard():
    try:
        forms = FeedbackForm.list_forms()
        student_count = Profile.count_students()
        forms_with_stats = []
        for form in forms:
            stats = compute_completion_stats(student_count, Submission.list_by_form(form['id']))
            forms_with_stats.append({
                'form': form,
                'stats': stats,
                'percentage': completion_percentage(stats),
            })
    except StoreError as e:
        logger.error(f"Failed to load teacher dashboard: {e}")
        flash("Failed to load feedback forms.", "danger")
        return render_template('teacher_dashboard.html', load_failed=True), 500

    overall = combine_completion_stats(item['stats'] for item in forms_with_stats)
    overall_percentage = completion_percentage(overall)

    return render_template(
        'teacher_dashboard.html',
        load_failed=False,
        forms=forms_with_stats,
        overall=overall,
        overall_percentage=overall_percentage,
        overall_status=completion_status(overall_percentage),
        teacher_id=current_session().profile.id,
    )


@teacher_bp.route('/forms/new', methods=['GET', 'POST'])
@role_required(TeacherProfile)
def create_form():
    if request.method == 'POST':
        question_texts = request.form.getlist('question')
        try:
            fields = validate_form_fields(
                request.form.get('title'),
                request.form.get('description'),
                request.form.get('due_date'),
            )
            question_texts = clean_question_texts(question_texts)
        except ValidationError as e:
            flash(str(e), "danger")
            return render_template(
                'form_edit.html', form=request.form, questions=question_texts or [''], editing=False,
            ), 400

        fields['created_by'] = current_session().profile.id
        try:
            FeedbackForm.create(fields, question_texts)
        except StoreError as e:
            logger.error(f"Failed to create form: {e}")
            flash("Failed to create form.", "danger")
            return render_template(
                'form_edit.html', form=request.form, questions=question_texts, editing=False,
            ), 500

        flash("Form created successfully.", "success")
        return redirect(url_for('teacher.dashboard'))

    return render_template('form_edit.html', form={}, questions=[''], editing=False)


@teacher_bp.route('/forms/<form_id>/edit', methods=['GET', 'POST'])
@role_required(TeacherProfile)
def edit_form(form_id):
    teacher = current_session().profile
    try:
        form = FeedbackForm.get(form_id)
    except StoreError as e:
        logger.error(f"Failed to load form {form_id}: {e}")
        flash("Could not load form data.", "danger")
        return redirect(url_for('teacher.dashboard'))
    if not form or form['created_by'] != teacher.id:
        return render_template('not_found.html', what="Form"), 404

    if request.method == 'POST':
        try:
            fields = validate_form_fields(
                request.form.get('title'),
                request.form.get('description'),
                request.form.get('due_date'),
                current_due_date=form['due_date'],
            )
            FeedbackForm.update(form_id, teacher.id, fields)
        except ValidationError as e:
            flash(str(e), "danger")
            return render_template('form_edit.html', form=request.form, questions=[], editing=True), 400
        except NotFoundError:
            return render_template('not_found.html', what="Form"), 404
        except StoreError as e:
            logger.error(f"Failed to update form {form_id}: {e}")
            flash("Failed to update form.", "danger")
            return render_template('form_edit.html', form=request.form, questions=[], editing=True), 500

        flash("Form updated successfully.", "success")
        return redirect(url_for('teacher.dashboard'))

    return render_template('form_edit.html', form=form, questions=[], editing=True)


@teacher_bp.route('/forms/<form_id>/delete', methods=['POST'])
@role_required(TeacherProfile)
def delete_form(form_id):
    try:
        FeedbackForm.delete(form_id, current_session().profile.id)
        flash("Form deleted.", "success")
    except NotFoundError:
        flash("Form not found.", "danger")
    except StoreError as e:
        logger.error(f"Failed to delete form {form_id}: {e}")
        flash("Failed to delete form.", "danger")
    return redirect(url_for('teacher.dashboard'))


@teacher_bp.route('/forms/<form_id>/responses')
@role_required(TeacherProfile)
def form_responses(form_id):
    tab = request.args.get('tab', 'summary')
    if tab not in ('summary', 'individual'):
        tab = 'summary'

    try:
        form = FeedbackForm.get(form_id)
        if not form:
            return render_template('not_found.html', what="Form"), 404
        questions = FeedbackForm.list_questions(form_id)
        responses = Submission.list_responses_for_form(form_id)
        submissions = Submission.list_by_form(form_id)
        students = Profile.list_students()
    except StoreError as e:
        logger.error(f"Failed to load responses for {form_id}: {e}")
        flash("Could not load form responses.", "danger")
        return redirect(url_for('teacher.dashboard'))

    stats = compute_completion_stats(len(students), submissions)
    percentage = completion_percentage(stats)

    context = {
        'form': form,
        'tab': tab,
        'stats': stats,
        'percentage': percentage,
        'status': completion_status(percentage),
    }

    if tab == 'summary':
        context['questions'] = []
        for qs in compute_question_stats(questions, responses):
            histogram = build_histogram(qs)
            context['questions'].append({
                'stats': qs,
                'histogram': histogram,
                'chart': histogram_data_uri(histogram),
            })
    else:
        context['submitted'] = summarize_submissions(submissions, students)
        context['pending'] = pending_students(students, submissions)

    return render_template('form_responses.html', **context)


@teacher_bp.route('/forms/<form_id>/questions/<question_id>/chart.png')
@role_required(TeacherProfile)
def question_chart(form_id, question_id):
    try:
        questions = FeedbackForm.list_questions(form_id)
        question = next((q for q in questions if q['id'] == question_id), None)
        if not question:
            return render_template('not_found.html', what="Question"), 404
        responses = Submission.list_responses_for_form(form_id)
    except StoreError as e:
        logger.error(f"Failed to load chart data for {question_id}: {e}")
        return make_response("Could not load chart data", 500)

    question_stats = compute_question_stats([question], responses)[0]
    png = render_histogram_png(build_histogram(question_stats), question['question_text'])

    response = make_response(png)
    response.headers['Content-Type'] = 'image/png'
    return response


@teacher_bp.route('/roster', methods=['GET', 'POST'])
@role_required(TeacherProfile)
def roster():
    if request.method == 'POST':
        if 'file' not in request.files:
            flash("No file uploaded", "danger")
            return redirect(url_for('teacher.roster'))

        file = request.files['file']

        if file.filename == '':
            flash("No file selected", "danger")
            return redirect(url_for('teacher.roster'))

        if not allowed_file(file.filename):
            flash("Invalid file type. Please upload an Excel file (.xlsx or .xls)", "danger")
            return redirect(url_for('teacher.roster'))

        # Check file size
        file.seek(0, os.SEEK_END)
        file_size = file.tell()
        file.seek(0)

        if file_size > MAX_FILE_SIZE:
            flash(f"File too large. Maximum size is {MAX_FILE_SIZE / (1024*1024):.0f}MB", "danger")
            return redirect(url_for('teacher.roster'))

        os.makedirs(UPLOAD_FOLDER, exist_ok=True)
        filepath = os.path.join(UPLOAD_FOLDER, secure_filename(file.filename))
        file.save(filepath)

        try:
            success, message, stats = process_roster_excel(filepath)
        except StoreError as e:
            logger.error(f"Failed to import roster: {e}")
            success, message = False, "Error importing students"
        finally:
            try:
                os.remove(filepath)
            except OSError as e:
                logger.warning(f"Could not delete {filepath}: {e}")

        flash(message, "success" if success else "danger")
        return redirect(url_for('teacher.roster'))

    try:
        students = Profile.list_students()
    except StoreError as e:
        logger.error(f"Failed to list students: {e}")
        flash("Could not load the student list.", "danger")
        students = []

    return render_template('roster.html', students=students)
