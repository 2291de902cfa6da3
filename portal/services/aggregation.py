"""
Aggregation of rating responses into the statistics shown on the dashboards.

Every function here is pure: it only looks at the data passed in and returns
new objects.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from config import (
    COMPLETION_SUCCESS_THRESHOLD,
    COMPLETION_WARNING_THRESHOLD,
    RATING_VALUES,
)


@dataclass(frozen=True)
class QuestionStats:
    question_id: str
    question_text: str
    average_rating: float
    counts: Dict[int, int] = field(default_factory=dict)

    @property
    def total_responses(self) -> int:
        return sum(self.counts.values())


@dataclass(frozen=True)
class CompletionStats:
    total: int
    completed: int


@dataclass(frozen=True)
class ChartPoint:
    rating: str
    count: int


def _get(record: Any, key: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def compute_question_stats(questions: Sequence[Any], responses: Iterable[Any]) -> List[QuestionStats]:
    """
    Per-question rating counts and averages.

    Args:
        questions: questions of one form, already in display order
        responses: rows with question_id and rating

    Returns one QuestionStats per question in input order. A question with
    no responses has an average of 0. Responses pointing at a question not
    in `questions`, or carrying a rating off the 1-5 scale, are ignored.
    """
    counts: Dict[Any, Dict[int, int]] = {}
    for question in questions:
        counts[_get(question, 'id')] = {rating: 0 for rating in RATING_VALUES}

    for response in responses:
        buckets = counts.get(_get(response, 'question_id'))
        if buckets is None:
            continue
        rating = _get(response, 'rating')
        if rating in buckets:
            buckets[rating] += 1

    stats = []
    for question in questions:
        question_id = _get(question, 'id')
        buckets = counts[question_id]
        total = sum(buckets.values())
        if total > 0:
            average = sum(rating * n for rating, n in buckets.items()) / total
        else:
            average = 0
        stats.append(QuestionStats(
            question_id=question_id,
            question_text=_get(question, 'question_text'),
            average_rating=average,
            counts=dict(buckets),
        ))
    return stats


def compute_completion_stats(total_eligible: int, submissions: Sequence[Any]) -> CompletionStats:
    """
    Completed vs eligible counts.

    Works in both directions: students who completed a form, or forms a
    student completed. `completed` is not clamped to `total`.
    """
    return CompletionStats(total=total_eligible, completed=len(submissions))


def combine_completion_stats(stats: Iterable[CompletionStats]) -> CompletionStats:
    total = 0
    completed = 0
    for item in stats:
        total += item.total
        completed += item.completed
    return CompletionStats(total=total, completed=completed)


def completion_percentage(stats: CompletionStats) -> int:
    if stats.total <= 0:
        return 0
    return math.floor(stats.completed / stats.total * 100)


def completion_status(percentage: int) -> str:
    """Badge colour for a completion percentage."""
    if percentage >= COMPLETION_SUCCESS_THRESHOLD:
        return 'success'
    if percentage >= COMPLETION_WARNING_THRESHOLD:
        return 'warning'
    return 'danger'


def build_histogram(question_stats: QuestionStats) -> List[ChartPoint]:
    """One point per rating value 1..5, zero-filled."""
    return [
        ChartPoint(rating=str(rating), count=question_stats.counts.get(rating, 0))
        for rating in RATING_VALUES
    ]


def summarize_submissions(submissions: Iterable[Mapping], students: Iterable[Mapping]) -> List[Dict[str, Any]]:
    """
    One row per distinct student who submitted, first submission wins.

    Students missing from the roster are reported as "Unknown".
    """
    by_id = {s['id']: s for s in students}
    rows = []
    seen = set()
    for submission in submissions:
        student_id = submission['student_id']
        if student_id in seen:
            continue
        seen.add(student_id)
        student = by_id.get(student_id)
        rows.append({
            'student_id': student_id,
            'full_name': student['full_name'] if student else 'Unknown',
            'roll_number': (student.get('student_id') if student else None) or 'N/A',
            'department': (student.get('department') if student else None) or 'N/A',
            'submitted_at': submission['submitted_at'],
        })
    return rows


def pending_students(students: Iterable[Mapping], submissions: Iterable[Mapping]) -> List[Mapping]:
    """Students with no submission among `submissions`, roster order kept."""
    submitted = {s['student_id'] for s in submissions}
    return [student for student in students if student['id'] not in submitted]


def split_forms_by_status(forms: Iterable[Mapping], submissions: Iterable[Mapping]) -> Tuple[List[Dict], List[Dict]]:
    """
    Partition a student's forms into (completed, pending).

    Each returned form dict gains a `submitted_at` key (None when pending).
    """
    submitted_at = {}
    for submission in submissions:
        submitted_at.setdefault(submission['form_id'], submission['submitted_at'])

    completed, pending = [], []
    for form in forms:
        entry = dict(form, submitted_at=submitted_at.get(form['id']))
        if form['id'] in submitted_at:
            completed.append(entry)
        else:
            pending.append(entry)
    return completed, pending
