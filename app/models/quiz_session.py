"""
QuizSession model - one timed attempt at a quiz by its owner
"""
from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Uuid, Index
from app.database import Base, JSONDocument
import uuid


class QuizSession(Base):
    """
    Quiz sessions table - persisted form of the session state machine

    ``version`` is an optimistic lock: a write based on a stale read
    fails instead of overwriting a concurrent transition.
    """
    __tablename__ = "quiz_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(String(64), nullable=False, index=True)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), nullable=False, index=True)
    session_token = Column(String(128), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="active", index=True)

    current_question_index = Column(Integer, default=0, nullable=False)
    answers = Column(JSONDocument, default=dict)  # {question_id: answer}
    question_times = Column(JSONDocument, default=dict)  # {question_id: seconds}
    flagged_questions = Column(JSONDocument, default=list)
    total_questions = Column(Integer, nullable=False)

    time_limit = Column(Integer, nullable=False)  # seconds
    time_spent = Column(Float, default=0.0, nullable=False)
    time_remaining = Column(Float, nullable=False)
    total_pauses = Column(Integer, default=0, nullable=False)
    total_resumes = Column(Integer, default=0, nullable=False)

    started_at = Column(DateTime, nullable=False)
    last_activity_at = Column(DateTime, nullable=False, index=True)
    last_resumed_at = Column(DateTime)
    paused_at = Column(DateTime)
    completed_at = Column(DateTime)
    expires_at = Column(DateTime, nullable=False, index=True)

    result_id = Column(Uuid)
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("ix_quiz_sessions_owner_quiz_status", "owner_id", "quiz_id", "status"),
    )

    def __repr__(self):
        return f"<QuizSession(id={self.id}, quiz_id={self.quiz_id}, status={self.status})>"
