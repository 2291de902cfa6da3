from functools import wraps
from flask import g, flash, redirect, url_for

from portal.session import StudentProfile, TeacherProfile


def current_session():
    return g.portal_session


def dashboard_endpoint(profile):
    """Landing page for a signed-in user."""
    if isinstance(profile, StudentProfile):
        return 'student.dashboard'
    if isinstance(profile, TeacherProfile):
        return 'teacher.dashboard'
    raise TypeError(f"Unhandled profile type: {type(profile).__name__}")


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_session().is_authenticated:
            flash("Please sign in to continue.", "info")
            return redirect(url_for('auth.login'))
        return view(*args, **kwargs)
    return wrapped


def role_required(profile_type):
    """Only let profiles of the given type through; others go to their own dashboard."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            portal_session = current_session()
            if not portal_session.is_authenticated:
                flash("Please sign in to continue.", "info")
                return redirect(url_for('auth.login'))
            if not isinstance(portal_session.profile, profile_type):
                flash("You do not have access to that page.", "danger")
                return redirect(url_for(dashboard_endpoint(portal_session.profile)))
            return view(*args, **kwargs)
        return wrapped
    return decorator
