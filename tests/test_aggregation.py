from portal.services.aggregation import (
    ChartPoint,
    CompletionStats,
    build_histogram,
    combine_completion_stats,
    compute_completion_stats,
    compute_question_stats,
    completion_percentage,
    completion_status,
    pending_students,
    split_forms_by_status,
    summarize_submissions,
)


QUESTIONS = [
    {"id": "q1", "question_text": "How clear were the lectures?", "question_order": 1},
    {"id": "q2", "question_text": "How useful were the labs?", "question_order": 2},
]


def _responses(question_id, ratings):
    return [{"question_id": question_id, "rating": r} for r in ratings]


def test_counts_and_average_for_mixed_ratings() -> None:
    stats = compute_question_stats(QUESTIONS[:1], _responses("q1", [3, 3, 4, 5, 5, 5]))

    assert len(stats) == 1
    assert stats[0].counts == {1: 0, 2: 0, 3: 2, 4: 1, 5: 3}
    assert abs(stats[0].average_rating - 25 / 6) < 1e-9
    assert stats[0].question_text == "How clear were the lectures?"


def test_one_entry_per_question_in_input_order() -> None:
    responses = _responses("q2", [1, 2]) + _responses("q1", [4])
    stats = compute_question_stats(QUESTIONS, responses)

    assert [s.question_id for s in stats] == ["q1", "q2"]
    assert sum(stats[0].counts.values()) == 1
    assert sum(stats[1].counts.values()) == 2


def test_question_without_responses_has_zero_average() -> None:
    stats = compute_question_stats(QUESTIONS, _responses("q1", [5]))

    empty = stats[1]
    assert empty.average_rating == 0
    assert empty.counts == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    assert empty.total_responses == 0


def test_responses_for_unknown_questions_are_ignored() -> None:
    responses = _responses("q1", [2]) + _responses("deleted-question", [5, 5])
    stats = compute_question_stats(QUESTIONS, responses)

    assert stats[0].counts[2] == 1
    assert stats[0].total_responses == 1
    assert stats[1].total_responses == 0


def test_off_scale_ratings_are_ignored() -> None:
    stats = compute_question_stats(QUESTIONS[:1], _responses("q1", [0, 6, 4]))
    assert stats[0].counts == {1: 0, 2: 0, 3: 0, 4: 1, 5: 0}
    assert stats[0].average_rating == 4


def test_accepts_objects_with_attributes() -> None:
    class Row:
        def __init__(self, question_id, rating):
            self.question_id = question_id
            self.rating = rating

    stats = compute_question_stats(QUESTIONS[:1], [Row("q1", 1), Row("q1", 3)])
    assert stats[0].average_rating == 2


def test_question_stats_is_idempotent() -> None:
    responses = _responses("q1", [1, 2, 3]) + _responses("q2", [5])
    assert compute_question_stats(QUESTIONS, responses) == compute_question_stats(QUESTIONS, responses)


def test_completion_with_no_eligible_users() -> None:
    stats = compute_completion_stats(0, [])
    assert stats == CompletionStats(total=0, completed=0)
    assert completion_percentage(stats) == 0


def test_completion_percentage_and_band() -> None:
    stats = compute_completion_stats(4, [{"id": "a"}, {"id": "b"}, {"id": "c"}])
    assert stats == CompletionStats(total=4, completed=3)
    assert completion_percentage(stats) == 75
    assert completion_status(75) == "success"


def test_completion_percentage_floors() -> None:
    assert completion_percentage(CompletionStats(total=3, completed=2)) == 66


def test_completed_is_not_clamped_to_total() -> None:
    stats = compute_completion_stats(1, [{"id": "a"}, {"id": "b"}])
    assert stats.completed == 2
    assert completion_percentage(stats) == 200


def test_status_bands() -> None:
    assert completion_status(0) == "danger"
    assert completion_status(49) == "danger"
    assert completion_status(50) == "warning"
    assert completion_status(74) == "warning"
    assert completion_status(100) == "success"


def test_combine_completion_stats_sums_both_counts() -> None:
    combined = combine_completion_stats([CompletionStats(10, 4), CompletionStats(10, 7)])
    assert combined == CompletionStats(total=20, completed=11)
    assert combine_completion_stats([]) == CompletionStats(total=0, completed=0)


def test_histogram_always_has_five_points() -> None:
    stats = compute_question_stats(QUESTIONS[:1], _responses("q1", [5, 5]))[0]
    points = build_histogram(stats)

    assert points == [
        ChartPoint("1", 0),
        ChartPoint("2", 0),
        ChartPoint("3", 0),
        ChartPoint("4", 0),
        ChartPoint("5", 2),
    ]


def test_histogram_of_empty_question() -> None:
    stats = compute_question_stats(QUESTIONS[1:], [])[0]
    assert [p.rating for p in build_histogram(stats)] == ["1", "2", "3", "4", "5"]
    assert all(p.count == 0 for p in build_histogram(stats))


def test_summarize_submissions_dedupes_and_marks_unknown_students() -> None:
    students = [{"id": "s1", "full_name": "Ann", "student_id": "CS1", "department": "CS"}]
    submissions = [
        {"student_id": "s1", "submitted_at": "2025-04-15T10:30:00"},
        {"student_id": "s1", "submitted_at": "2025-04-16T10:30:00"},
        {"student_id": "gone", "submitted_at": "2025-04-17T10:30:00"},
    ]

    rows = summarize_submissions(submissions, students)

    assert [r["student_id"] for r in rows] == ["s1", "gone"]
    assert rows[0]["submitted_at"] == "2025-04-15T10:30:00"
    assert rows[1]["full_name"] == "Unknown"
    assert rows[1]["roll_number"] == "N/A"


def test_pending_students_keeps_roster_order() -> None:
    students = [{"id": "s1"}, {"id": "s2"}, {"id": "s3"}]
    pending = pending_students(students, [{"student_id": "s2"}])
    assert [s["id"] for s in pending] == ["s1", "s3"]


def test_split_forms_by_status() -> None:
    forms = [{"id": "f1", "title": "A"}, {"id": "f2", "title": "B"}]
    submissions = [{"form_id": "f2", "submitted_at": "2025-04-16T14:20:00"}]

    completed, pending = split_forms_by_status(forms, submissions)

    assert [f["id"] for f in completed] == ["f2"]
    assert completed[0]["submitted_at"] == "2025-04-16T14:20:00"
    assert [f["id"] for f in pending] == ["f1"]
    assert pending[0]["submitted_at"] is None
    assert "submitted_at" not in forms[0]
