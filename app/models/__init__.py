"""
Database models package
"""
from app.models.quiz import Quiz
from app.models.quiz_session import QuizSession
from app.models.quiz_result import QuizResult

__all__ = ["Quiz", "QuizSession", "QuizResult"]
