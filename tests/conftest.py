import pytest

import portal.models.database as database
from portal.models import init_db, Profile, FeedbackForm


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "DATABASE_PATH", str(tmp_path / "feedback.db"))
    init_db()
    return tmp_path / "feedback.db"


@pytest.fixture
def teacher(db):
    return Profile.create(
        email="teacher@example.com",
        password="password",
        full_name="Dr. Smith",
        department="Computer Science",
        user_role="teacher",
        position="Associate Professor",
    )


@pytest.fixture
def student(db):
    return Profile.create(
        email="student@example.com",
        password="password",
        full_name="John Doe",
        department="Computer Science",
        user_role="student",
        student_id="CS2023001",
    )


@pytest.fixture
def make_form(teacher):
    def _make(title="Course Content Feedback", questions=("Pace", "Clarity"), due_date="2099-05-01"):
        form, created = FeedbackForm.create(
            {
                "title": title,
                "description": "Please rate the course",
                "due_date": due_date,
                "created_by": teacher["id"],
            },
            list(questions),
        )
        return form, created
    return _make


@pytest.fixture
def client(db):
    from app import app

    app.config.update(TESTING=True)
    with app.test_client() as test_client:
        yield test_client


def sign_in(client, email, password="password"):
    return client.post("/login", data={"email": email, "password": password})
