from datetime import datetime

import pytest

from app.services.analytics_service import analytics_service, percent, performance_rating
from app.services.grading_service import grading_service
from app.services.scoring_service import scoring_service
from conftest import OWNER, SAMPLE_QUESTIONS

FILL_IN = SAMPLE_QUESTIONS[2]


@pytest.mark.parametrize("submitted, expected", [
    ("Paris", True),
    ("paris ", True),
    ("Pari", True),
    ("a", True),
    ("London", False),
    ("B", False),
    ("", False),
    (None, False),
])
def test_fill_in_the_blank_grading(submitted, expected):
    assert grading_service.grade_question(FILL_IN, submitted) is expected


def test_fill_in_the_blank_with_free_text_answer_key():
    question = dict(FILL_IN, answer="Mitochondria", options={})
    assert grading_service.grade_question(question, "the mitochondria")
    assert not grading_service.grade_question(question, "ribosome")


def test_choice_grading_is_exact_label_match():
    question = SAMPLE_QUESTIONS[0]
    assert grading_service.grade_question(question, "b")
    assert grading_service.grade_question(question, 1)
    assert not grading_service.grade_question(question, "4")
    assert not grading_service.grade_question(question, "A")


def test_grade_answers_skips_unknown_ids():
    report = grading_service.grade_answers(SAMPLE_QUESTIONS, {"q1": "B", "q2": "B", "q99": "A"})
    assert report.score == 1
    assert report.total_questions == 3
    assert report.skipped_question_ids == ["q99"]
    assert report.outcomes == [True, False, False]


def test_result_analytics():
    questions = [dict(SAMPLE_QUESTIONS[0], id=f"q{n}", difficulty=difficulty)
                 for n, difficulty in enumerate(["easy", "easy", "hard", "hard", "medium"], start=1)]
    answers = {"q1": "B", "q2": "B", "q3": "A", "q4": "B", "q5": "B"}
    report = grading_service.grade_answers(questions, answers)
    analytics = analytics_service.compute_result_analytics(questions, report, 250.0, {"q1": 30.0})

    assert report.score == 4
    assert analytics["accuracy"] == 80
    assert analytics["average_time_per_question"] == 50.0
    assert analytics["difficulty_breakdown"]["easy"] == {"correct": 2, "total": 2}
    assert analytics["difficulty_breakdown"]["hard"] == {"correct": 1, "total": 2}
    assert sum(bucket["correct"] for bucket in analytics["difficulty_breakdown"].values()) == report.score
    assert analytics["streak"] == {"longest": 2, "current": 2, "breakdown": [2, 2]}
    assert analytics["time_distribution"] == {"q1": 30.0}
    assert analytics["areas_for_improvement"] == ["hard-difficulty"]


def test_insights_and_rating():
    analytics = {
        "accuracy": 50,
        "average_time_per_question": 75.0,
        "difficulty_breakdown": {"hard": {"correct": 0, "total": 2}},
        "areas_for_improvement": ["hard-difficulty"],
    }
    insights = analytics_service.generate_insights(analytics)
    assert insights[0].startswith("Focus on fundamental concepts")
    assert any("time management" in insight for insight in insights)
    assert any("difficult concepts" in insight for insight in insights)
    assert len(insights) == 4

    assert performance_rating(90) == "excellent"
    assert performance_rating(75) == "good"
    assert performance_rating(60) == "average"
    assert performance_rating(59) == "needs-improvement"


def test_percent_rounds_half_up():
    assert percent(1, 8) == 13
    assert percent(2, 3) == 67
    assert percent(0, 0) == 0


def test_rolling_statistics(db, make_quiz):
    quiz = make_quiz()
    now = datetime(2024, 5, 1, 10, 0, 0)

    scoring_service.record_result(db, quiz, OWNER, {"q1": "B", "q2": "A", "q3": "Paris"}, 90.0, now)
    db.commit()
    scoring_service.record_result(db, quiz, OWNER, {"q1": "A"}, 30.0, now)
    db.commit()
    scoring_service.record_result(db, quiz, "user-2", {"q1": "B", "q2": "A"}, 60.0, now)
    db.commit()

    db.refresh(quiz)
    assert quiz.total_attempts == 3
    assert quiz.average_score == pytest.approx((3 + 0 + 2) / 3)
    assert quiz.average_time == pytest.approx(60.0)
    assert quiz.success_rate == pytest.approx(2 / 3)


def test_user_and_quiz_analytics(db, make_quiz):
    quiz = make_quiz()
    now = datetime(2024, 5, 1, 10, 0, 0)
    scoring_service.record_result(db, quiz, OWNER, {"q1": "B", "q2": "A", "q3": "Paris"}, 90.0, now)
    scoring_service.record_result(db, quiz, OWNER, {"q1": "B"}, 30.0, now)
    db.commit()

    summary = analytics_service.get_user_analytics(db, OWNER)
    assert summary["total_quizzes"] == 2
    assert summary["average_score"] == 67  # (100 + 33) / 2
    assert summary["average_time"] == 60
    assert summary["score_ranges"] == {"0-50": 1, "50-80": 0, "80-100": 1}
    assert summary["performance_by_difficulty"]["easy"] == {"average": 100, "count": 2}
    assert summary["performance_by_difficulty"]["hard"] == {"average": 50, "count": 2}
    assert len(summary["recent_results"]) == 2

    quiz_view = analytics_service.get_quiz_analytics(db, quiz)
    assert quiz_view["metadata"]["total_attempts"] == 2
    assert quiz_view["unique_users"] == 1
    assert {"question_id": "q2", "misses": 1} in quiz_view["difficult_questions"]

    assert analytics_service.get_user_analytics(db, "nobody")["total_quizzes"] == 0
