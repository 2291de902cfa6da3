from flask import Blueprint, render_template, request, redirect, url_for, flash
import logging

from config import ROLES, ROLE_STUDENT
from portal.errors import AuthenticationError, StoreError, ValidationError
from portal.models.form import FeedbackForm
from portal.models.profile import Profile
from portal.models.submission import Submission
from portal.services.aggregation import compute_completion_stats, completion_percentage, completion_status
from portal.session import StudentProfile, TeacherProfile
from routes.guards import current_session, dashboard_endpoint, login_required

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    portal_session = current_session()
    if portal_session.is_authenticated:
        return redirect(url_for(dashboard_endpoint(portal_session.profile)))

    if request.method == 'POST':
        email = request.form.get('email', '').strip()
        password = request.form.get('password', '')
        if not email or not password:
            flash("Please enter your email and password.", "danger")
            return render_template('login.html', mode='signin', roles=ROLES), 400

        try:
            row = Profile.authenticate(email, password)
        except AuthenticationError as e:
            flash(str(e), "danger")
            return render_template('login.html', mode='signin', roles=ROLES), 401
        except StoreError:
            flash("Could not sign you in. Please try again.", "danger")
            return render_template('login.html', mode='signin', roles=ROLES), 500

        profile = portal_session.sign_in(row['id'])
        logger.info(f"{row['email']} signed in as {row['user_role']}")
        flash("Signed in successfully.", "success")
        return redirect(url_for(dashboard_endpoint(profile)))

    return render_template('login.html', mode='signin', roles=ROLES)


@auth_bp.route('/signup', methods=['POST'])
def signup():
    form = request.form
    email = form.get('email', '').strip()
    password = form.get('password', '')
    full_name = form.get('full_name', '').strip()
    department = form.get('department', '').strip()
    user_role = form.get('user_role', ROLE_STUDENT)

    if not all([email, password, full_name, department]):
        flash("Please fill in all required fields.", "danger")
        return render_template('login.html', mode='signup', roles=ROLES), 400
    if user_role not in ROLES:
        flash("Please choose a valid role.", "danger")
        return render_template('login.html', mode='signup', roles=ROLES), 400

    try:
        row = Profile.create(
            email=email,
            password=password,
            full_name=full_name,
            department=department,
            user_role=user_role,
            student_id=form.get('student_id', '').strip() or None,
            position=form.get('position', '').strip() or None,
        )
    except (AuthenticationError, ValidationError) as e:
        flash(str(e), "danger")
        return render_template('login.html', mode='signup', roles=ROLES), 400
    except StoreError:
        flash("Could not create your account. Please try again.", "danger")
        return render_template('login.html', mode='signup', roles=ROLES), 500

    profile = current_session().sign_in(row['id'])
    flash("Account created successfully.", "success")
    return redirect(url_for(dashboard_endpoint(profile)))


@auth_bp.route('/logout')
def logout():
    current_session().sign_out()
    flash("You have been signed out.", "info")
    return redirect(url_for('auth.login'))


@auth_bp.route('/profile', methods=['GET', 'POST'])
@login_required
def profile():
    portal_session = current_session()
    user = portal_session.profile

    if request.method == 'POST':
        full_name = request.form.get('full_name', '').strip()
        department = request.form.get('department', '').strip()
        if not full_name or not department:
            flash("Name and department are required.", "danger")
            return render_template('profile.html', profile=user, **_completion_context(user)), 400

        if isinstance(user, StudentProfile):
            extra = {'student_id': request.form.get('student_id', '').strip() or None}
        elif isinstance(user, TeacherProfile):
            extra = {'position': request.form.get('position', '').strip() or None}
        else:
            raise TypeError(f"Unhandled profile type: {type(user).__name__}")

        try:
            Profile.update(user.id, full_name, department, **extra)
        except StoreError:
            flash("Could not update your profile.", "danger")
            return render_template('profile.html', profile=user, **_completion_context(user)), 500

        portal_session.refresh()
        flash("Profile updated.", "success")
        return redirect(url_for('auth.profile'))

    return render_template('profile.html', profile=user, **_completion_context(user))


def _completion_context(user):
    """Form completion card values for a student's profile page."""
    if not isinstance(user, StudentProfile):
        return {}
    try:
        stats = compute_completion_stats(len(FeedbackForm.list_forms()), Submission.list_by_student(user.id))
    except StoreError as e:
        logger.error(f"Failed to load completion stats for {user.id}: {e}")
        return {}
    percentage = completion_percentage(stats)
    return {
        'completion': stats,
        'completion_percentage': percentage,
        'completion_status': completion_status(percentage),
    }
