"""
QuizResult model - graded outcome of one completed attempt
"""
from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Uuid, func
from app.database import Base, JSONDocument
import uuid


class QuizResult(Base):
    """
    Quiz results table - written once per completed session, never updated
    """
    __tablename__ = "quiz_results"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(String(64), nullable=False, index=True)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), nullable=False, index=True)
    session_id = Column(Uuid, ForeignKey("quiz_sessions.id"), unique=True)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    selected_answers = Column(JSONDocument, nullable=False)
    breakdown = Column(JSONDocument)  # per-question grading
    time_taken = Column(Float, nullable=False)  # seconds
    status = Column(String(20), nullable=False, default="completed", index=True)
    difficulty = Column(String(20))
    analytics = Column(JSONDocument, nullable=False)
    feedback = Column(JSONDocument)
    completed_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    @property
    def percentage(self) -> int:
        if not self.total_questions:
            return 0
        return int(self.score * 100 / self.total_questions + 0.5)

    def __repr__(self):
        return f"<QuizResult(owner_id={self.owner_id}, quiz_id={self.quiz_id}, score={self.score})>"
