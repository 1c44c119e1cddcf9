"""
Quiz model - generated quizzes with embedded questions and rolling statistics
"""
from sqlalchemy import Column, String, Integer, Float, Boolean, Text, DateTime, Uuid, func
from app.database import Base, JSONDocument
import uuid


class Quiz(Base):
    """
    Quizzes table - questions are embedded documents; statistics are
    updated incrementally after every completed attempt
    """
    __tablename__ = "quizzes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255))
    topic = Column(String(255))
    source = Column(String(20), nullable=False)  # "topic" or "content"
    category = Column(String(50))
    difficulty = Column(String(20), nullable=False)
    num_questions = Column(Integer, nullable=False)  # requested count
    questions = Column(JSONDocument, nullable=False)
    tags = Column(JSONDocument, default=list)
    estimated_time = Column(Integer)  # minutes
    model_used = Column(String(64))
    is_partial = Column(Boolean, default=False, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="active", nullable=False)
    content_excerpt = Column(Text)

    # Rolling statistics
    total_attempts = Column(Integer, default=0, nullable=False)
    average_score = Column(Float, default=0.0, nullable=False)
    average_time = Column(Float, default=0.0, nullable=False)
    success_rate = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime, server_default=func.now())

    @property
    def statistics(self) -> dict:
        return {
            "total_attempts": self.total_attempts or 0,
            "average_score": self.average_score or 0.0,
            "average_time": self.average_time or 0.0,
            "success_rate": self.success_rate or 0.0,
        }

    def get_question(self, question_id: str):
        for question in self.questions or []:
            if question.get("id") == question_id:
                return question
        return None

    def __repr__(self):
        return f"<Quiz(id={self.id}, topic={self.topic}, difficulty={self.difficulty})>"
