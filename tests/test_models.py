import sqlite3

import pytest

from portal.errors import (
    AuthenticationError,
    DuplicateSubmissionError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from portal.models import FeedbackForm, Profile, Submission, get_db
import portal.models.submission as submission_module


def _answers(questions, rating=4):
    return [{"question_id": q["id"], "rating": rating} for q in questions]


def test_create_form_numbers_questions_in_order(make_form) -> None:
    form, questions = make_form(questions=["First", "Second", "Third"])

    listed = FeedbackForm.list_questions(form["id"])
    assert [q["question_text"] for q in listed] == ["First", "Second", "Third"]
    assert [q["question_order"] for q in listed] == [1, 2, 3]
    assert FeedbackForm.get(form["id"])["title"] == "Course Content Feedback"


def test_get_missing_form_returns_none(db) -> None:
    assert FeedbackForm.get("missing") is None


def test_create_questions_continues_numbering(make_form) -> None:
    form, _ = make_form(questions=["One"])
    added = FeedbackForm.create_questions(form["id"], ["Two", "Three"])

    assert [q["question_order"] for q in added] == [2, 3]
    assert len(FeedbackForm.list_questions(form["id"])) == 3


def test_create_questions_for_missing_form(db) -> None:
    with pytest.raises(NotFoundError):
        FeedbackForm.create_questions("missing", ["Orphan"])


def test_list_forms_orders_by_due_date(make_form) -> None:
    make_form(title="Later", due_date="2099-06-01")
    make_form(title="Sooner", due_date="2099-01-01")
    assert [f["title"] for f in FeedbackForm.list_forms()] == ["Sooner", "Later"]


def test_update_form_requires_owner(make_form, teacher, student) -> None:
    form, _ = make_form()
    fields = {"title": "Renamed", "description": "", "due_date": "2099-12-31"}

    with pytest.raises(NotFoundError):
        FeedbackForm.update(form["id"], student["id"], fields)

    FeedbackForm.update(form["id"], teacher["id"], fields)
    updated = FeedbackForm.get(form["id"])
    assert updated["title"] == "Renamed"
    assert updated["description"] is None


def test_delete_form_cascades(make_form, teacher, student) -> None:
    form, questions = make_form()
    Submission.submit_form(form["id"], student["id"], _answers(questions))

    FeedbackForm.delete(form["id"], teacher["id"])

    assert FeedbackForm.get(form["id"]) is None
    assert FeedbackForm.list_questions(form["id"]) == []
    assert Submission.list_by_student(student["id"]) == []
    with get_db() as conn:
        assert conn.execute("SELECT COUNT(*) FROM question_responses").fetchone()[0] == 0


def test_delete_form_of_another_teacher(make_form, student) -> None:
    form, _ = make_form()
    with pytest.raises(NotFoundError):
        FeedbackForm.delete(form["id"], student["id"])
    assert FeedbackForm.get(form["id"]) is not None


def test_submit_form_writes_submission_and_responses(make_form, student) -> None:
    form, questions = make_form()
    submission = Submission.submit_form(
        form["id"], student["id"],
        [{"question_id": questions[0]["id"], "rating": 5},
         {"question_id": questions[1]["id"], "rating": 2}],
    )

    assert Submission.exists(form["id"], student["id"])
    assert [s["id"] for s in Submission.list_by_form(form["id"])] == [submission["id"]]

    rows = Submission.list_responses_for_form(form["id"])
    assert [(r["question_text"], r["rating"]) for r in rows] == [("Pace", 5), ("Clarity", 2)]
    assert all(r["student_id"] == student["id"] for r in rows)


def test_second_submission_is_rejected(make_form, student) -> None:
    form, questions = make_form()
    Submission.submit_form(form["id"], student["id"], _answers(questions))

    with pytest.raises(DuplicateSubmissionError):
        Submission.submit_form(form["id"], student["id"], _answers(questions, rating=1))

    assert len(Submission.list_by_form(form["id"])) == 1
    assert {r["rating"] for r in Submission.list_responses_for_form(form["id"])} == {4}


def test_failed_response_insert_leaves_no_submission(make_form, student) -> None:
    form, questions = make_form()
    answers = [{"question_id": questions[0]["id"], "rating": 3},
               {"question_id": questions[1]["id"], "rating": 9}]

    with pytest.raises(StoreError):
        Submission.submit_form(form["id"], student["id"], answers)

    assert not Submission.exists(form["id"], student["id"])
    with get_db() as conn:
        assert conn.execute("SELECT COUNT(*) FROM question_responses").fetchone()[0] == 0


def test_submit_rejects_questions_from_other_forms(make_form, student) -> None:
    form, _ = make_form()
    _, other_questions = make_form(title="Other")

    with pytest.raises(ValidationError):
        Submission.submit_form(form["id"], student["id"], _answers(other_questions))
    assert not Submission.exists(form["id"], student["id"])


def test_submit_to_missing_form(student) -> None:
    with pytest.raises(NotFoundError):
        Submission.submit_form("missing", student["id"], [])


def test_submit_without_responses_is_rejected(make_form, student) -> None:
    form, _ = make_form()

    with pytest.raises(ValidationError):
        Submission.submit_form(form["id"], student["id"], [])

    assert not Submission.exists(form["id"], student["id"])


def test_submit_must_answer_every_question(make_form, student) -> None:
    form, questions = make_form()

    with pytest.raises(ValidationError):
        Submission.submit_form(form["id"], student["id"], _answers(questions[:1]))

    assert not Submission.exists(form["id"], student["id"])


@pytest.mark.parametrize("questions", [("Pace",), ("Pace", "Clarity")])
def test_submit_rejects_two_ratings_for_one_question(make_form, student, questions) -> None:
    form, created = make_form(questions=questions)
    answers = _answers(created) + [{"question_id": created[0]["id"], "rating": 1}]

    with pytest.raises(ValidationError):
        Submission.submit_form(form["id"], student["id"], answers)

    assert Submission.list_responses_for_form(form["id"]) == []


def test_one_rating_per_question_per_submission_in_store(make_form, student) -> None:
    form, questions = make_form(questions=("Pace",))
    Submission.submit_form(form["id"], student["id"], _answers(questions))
    submission_id = Submission.list_by_form(form["id"])[0]["id"]

    with pytest.raises(StoreError):
        with get_db() as conn:
            conn.execute(
                "INSERT INTO question_responses (id, submission_id, question_id, rating, created_at)"
                " VALUES (?, ?, ?, ?, ?)",
                ("r-extra", submission_id, questions[0]["id"], 1, "2025-01-01T00:00:00"),
            )


def test_concurrent_duplicate_submit_raises_duplicate_error(make_form, student, monkeypatch) -> None:
    form, questions = make_form()
    Submission.submit_form(form["id"], student["id"], _answers(questions))
    # the other submit commits between the existence check and the insert
    monkeypatch.setattr(submission_module, "_already_submitted", lambda *args: False)

    with pytest.raises(DuplicateSubmissionError):
        Submission.submit_form(form["id"], student["id"], _answers(questions, rating=1))

    assert {r["rating"] for r in Submission.list_responses_for_form(form["id"])} == {4}


def test_unique_constraint_backs_up_duplicate_check(make_form, student) -> None:
    form, _ = make_form()
    with get_db() as conn:
        conn.execute(
            "INSERT INTO form_submissions (id, form_id, student_id, submitted_at) VALUES (?, ?, ?, ?)",
            ("s-1", form["id"], student["id"], "2025-01-01T00:00:00"),
        )
    with pytest.raises(StoreError):
        with get_db() as conn:
            conn.execute(
                "INSERT INTO form_submissions (id, form_id, student_id, submitted_at) VALUES (?, ?, ?, ?)",
                ("s-2", form["id"], student["id"], "2025-01-02T00:00:00"),
            )


def test_get_db_wraps_sqlite_errors(db) -> None:
    with pytest.raises(StoreError) as excinfo:
        with get_db() as conn:
            conn.execute("SELECT * FROM no_such_table")
    assert isinstance(excinfo.value.__cause__, sqlite3.Error)


def test_authenticate(teacher) -> None:
    assert Profile.authenticate(" Teacher@Example.com ", "password")["id"] == teacher["id"]
    with pytest.raises(AuthenticationError):
        Profile.authenticate("teacher@example.com", "wrong")
    with pytest.raises(AuthenticationError):
        Profile.authenticate("nobody@example.com", "password")


def test_profile_does_not_expose_password_hash(teacher) -> None:
    assert "password_hash" not in teacher
    assert "password_hash" not in Profile.authenticate("teacher@example.com", "password")


def test_duplicate_email_is_rejected(student) -> None:
    with pytest.raises(AuthenticationError):
        Profile.create("STUDENT@example.com", "x", "Someone", "Math", "student")


def test_unknown_role_is_rejected(db) -> None:
    with pytest.raises(ValidationError):
        Profile.create("admin@example.com", "x", "Admin", "Office", "admin")


def test_role_specific_fields(teacher) -> None:
    assert teacher["position"] == "Associate Professor"
    assert teacher["student_id"] is None


def test_count_and_list_students(teacher, student) -> None:
    added, duplicates, duplicate_list = Profile.bulk_add_students(
        [("a@example.com", "Ann", "CS", "CS1"), ("student@example.com", "Dup", "CS", "CS2")],
        "secret",
    )

    assert (added, duplicates, duplicate_list) == (1, 1, ["student@example.com"])
    assert Profile.count_students() == 2
    assert {s["email"] for s in Profile.list_students()} == {"a@example.com", "student@example.com"}
    assert Profile.authenticate("a@example.com", "secret")["full_name"] == "Ann"


def test_update_profile(student) -> None:
    assert Profile.update(student["id"], "Jane Doe", "Physics", student_id="PH1", position="ignored")
    updated = Profile.get(student["id"])
    assert updated["full_name"] == "Jane Doe"
    assert updated["student_id"] == "PH1"
    assert updated["position"] is None
