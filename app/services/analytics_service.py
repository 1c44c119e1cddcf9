"""
Analytics service for graded results, user performance and quiz statistics
"""
import logging
import math
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.models import Quiz, QuizResult
from app.services.grading_service import GradingReport
from app.services.question_validator import DIFFICULTIES, QUESTION_TYPES

logger = logging.getLogger(__name__)

SLOW_ANSWER_SECONDS = 60
HARD_MASTERY_THRESHOLD = 0.5
RECENT_RESULTS_LIMIT = 10

IMPROVEMENT_ADVICE = {
    "easy-difficulty": "Revisit the fundamentals: easy questions are costing you points.",
    "medium-difficulty": "Practice applying concepts to close the gap on medium questions.",
    "hard-difficulty": "Work through advanced problems to strengthen your hard-question accuracy.",
    "multiple-choice-questions": "Eliminate distractors more carefully on multiple-choice questions.",
    "true-false-questions": "Read true/false statements closely; small qualifiers change the answer.",
    "fill-in-the-blank-questions": "Review key terms and spelling for fill-in-the-blank answers.",
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(part: float, whole: float) -> int:
    """Percentage rounded half-up"""
    if not whole:
        return 0
    return round_half_up(100 * part / whole)


def performance_rating(percentage: float) -> str:
    if percentage >= 90:
        return "excellent"
    if percentage >= 75:
        return "good"
    if percentage >= 60:
        return "average"
    return "needs-improvement"


class AnalyticsService:
    """Service for per-result analytics and aggregate performance views"""

    def compute_result_analytics(
        self,
        questions: List[Dict[str, Any]],
        report: GradingReport,
        time_taken: float,
        question_times: Optional[Dict[str, float]] = None,
    ) -> Dict[str, Any]:
        """
        Build the analytics block stored on a QuizResult

        Args:
            questions: Ordered question documents that were graded
            report: Grading outcome for those questions
            time_taken: Total active time in seconds
            question_times: Seconds spent per question id, when tracked

        Returns:
            Analytics dictionary
        """
        difficulty_breakdown = {difficulty: {"correct": 0, "total": 0} for difficulty in DIFFICULTIES}
        type_breakdown = {question_type: {"correct": 0, "total": 0} for question_type in QUESTION_TYPES}

        current_streak = 0
        longest_streak = 0
        streak_breakdown = []

        for question, is_correct in zip(questions, report.outcomes):
            difficulty_bucket = difficulty_breakdown.setdefault(
                question.get("difficulty") or "unrated", {"correct": 0, "total": 0}
            )
            type_bucket = type_breakdown.setdefault(question.get("type"), {"correct": 0, "total": 0})
            difficulty_bucket["total"] += 1
            type_bucket["total"] += 1

            if is_correct:
                difficulty_bucket["correct"] += 1
                type_bucket["correct"] += 1
                current_streak += 1
                longest_streak = max(longest_streak, current_streak)
            else:
                if current_streak > 0:
                    streak_breakdown.append(current_streak)
                current_streak = 0

        if current_streak > 0:
            streak_breakdown.append(current_streak)

        total = report.total_questions
        return {
            "accuracy": percent(report.score, total),
            "average_time_per_question": time_taken / total if total else 0.0,
            "difficulty_breakdown": difficulty_breakdown,
            "question_type_breakdown": type_breakdown,
            "time_distribution": {
                question_id: round(seconds, 2) for question_id, seconds in (question_times or {}).items()
            },
            "streak": {
                "longest": longest_streak,
                "current": current_streak,
                "breakdown": streak_breakdown,
            },
            "areas_for_improvement": self.identify_improvement_areas(difficulty_breakdown, type_breakdown),
        }

    def identify_improvement_areas(
        self,
        difficulty_breakdown: Dict[str, Dict[str, int]],
        type_breakdown: Dict[str, Dict[str, int]],
    ) -> List[str]:
        """Label every bucket whose correct/total ratio is below the success threshold"""
        areas = []
        for difficulty, data in difficulty_breakdown.items():
            if data["total"] > 0 and data["correct"] / data["total"] < settings.SUCCESS_RATE_THRESHOLD:
                areas.append(f"{difficulty}-difficulty")
        for question_type, data in type_breakdown.items():
            if data["total"] > 0 and data["correct"] / data["total"] < settings.SUCCESS_RATE_THRESHOLD:
                areas.append(f"{question_type}-questions")
        return areas

    def generate_insights(self, analytics: Dict[str, Any]) -> List[str]:
        """Short advice strings derived from a result's analytics"""
        insights = []
        accuracy = analytics.get("accuracy", 0)

        if accuracy < 60:
            insights.append("Focus on fundamental concepts and review basic materials.")
        elif accuracy < 80:
            insights.append("Good understanding, but practice more complex problems.")
        else:
            insights.append("Excellent performance! Consider more challenging topics.")

        if analytics.get("average_time_per_question", 0) > SLOW_ANSWER_SECONDS:
            insights.append("Work on improving your speed and time management.")

        hard = analytics.get("difficulty_breakdown", {}).get("hard", {})
        if hard.get("total") and hard["correct"] / hard["total"] < HARD_MASTERY_THRESHOLD:
            insights.append("Focus on mastering difficult concepts and advanced topics.")

        for area in analytics.get("areas_for_improvement", []):
            insights.append(IMPROVEMENT_ADVICE.get(area, f"Spend more time on {area.replace('-', ' ')}."))

        return insights

    def get_user_analytics(self, db: Session, owner_id: str) -> Dict[str, Any]:
        """
        Aggregate a user's completed results

        Args:
            db: Database session
            owner_id: User id

        Returns:
            Dictionary with performance metrics
        """
        results = db.query(QuizResult).filter(
            QuizResult.owner_id == owner_id,
            QuizResult.status == "completed",
        ).order_by(QuizResult.completed_at.desc()).all()

        score_ranges = {"0-50": 0, "50-80": 0, "80-100": 0}
        if not results:
            return {
                "owner_id": owner_id,
                "total_quizzes": 0,
                "average_score": 0,
                "average_time": 0,
                "score_ranges": score_ranges,
                "performance_by_difficulty": {d: {"average": 0, "count": 0} for d in DIFFICULTIES},
                "performance_by_question_type": {t: {"average": 0, "count": 0} for t in QUESTION_TYPES},
                "weak_areas": [],
                "recent_results": [],
            }

        percentages = [result.percentage for result in results]
        for value in percentages:
            if value <= 50:
                score_ranges["0-50"] += 1
            elif value <= 80:
                score_ranges["50-80"] += 1
            else:
                score_ranges["80-100"] += 1

        weak_areas = sorted({
            area for result in results for area in (result.analytics or {}).get("areas_for_improvement", [])
        })

        return {
            "owner_id": owner_id,
            "total_quizzes": len(results),
            "average_score": round_half_up(sum(percentages) / len(results)),
            "average_time": round_half_up(sum(result.time_taken for result in results) / len(results)),
            "score_ranges": score_ranges,
            "performance_by_difficulty": self._bucket_averages(results, "difficulty_breakdown", DIFFICULTIES),
            "performance_by_question_type": self._bucket_averages(results, "question_type_breakdown", QUESTION_TYPES),
            "weak_areas": weak_areas,
            "recent_results": [
                {
                    "result_id": str(result.id),
                    "quiz_id": str(result.quiz_id),
                    "score": result.score,
                    "total_questions": result.total_questions,
                    "percentage": result.percentage,
                    "completed_at": result.completed_at.isoformat() if result.completed_at else None,
                }
                for result in results[:RECENT_RESULTS_LIMIT]
            ],
        }

    def get_quiz_analytics(self, db: Session, quiz: Quiz) -> Dict[str, Any]:
        """Rolling statistics plus result-derived figures for one quiz"""
        results = db.query(QuizResult).filter(
            QuizResult.quiz_id == quiz.id,
            QuizResult.status == "completed",
        ).all()

        question_misses = {question["id"]: 0 for question in quiz.questions or []}
        for result in results:
            for item in result.breakdown or []:
                if not item.get("is_correct") and item.get("question_id") in question_misses:
                    question_misses[item["question_id"]] += 1

        hardest = sorted(question_misses.items(), key=lambda pair: pair[1], reverse=True)
        return {
            "quiz_id": str(quiz.id),
            "title": quiz.title,
            "metadata": quiz.statistics,
            "unique_users": len({result.owner_id for result in results}),
            "difficult_questions": [
                {"question_id": question_id, "misses": misses}
                for question_id, misses in hardest[:5] if misses > 0
            ],
        }

    def _bucket_averages(self, results: List[QuizResult], key: str, buckets) -> Dict[str, Dict[str, Any]]:
        """Average percentage correct per bucket across all results that contain it"""
        totals = {bucket: {"correct": 0, "total": 0, "count": 0} for bucket in buckets}
        for result in results:
            for bucket, data in (result.analytics or {}).get(key, {}).items():
                if bucket not in totals or not data.get("total"):
                    continue
                totals[bucket]["correct"] += data["correct"]
                totals[bucket]["total"] += data["total"]
                totals[bucket]["count"] += 1
        return {
            bucket: {"average": percent(data["correct"], data["total"]), "count": data["count"]}
            for bucket, data in totals.items()
        }


# Global instance
analytics_service = AnalyticsService()
