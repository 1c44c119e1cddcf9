"""
Pydantic schemas for quiz session endpoints
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from datetime import datetime
from uuid import UUID

from app.schemas.quiz import Feedback, QuizResultResponse


class SessionStartRequest(BaseModel):
    quiz_id: UUID


class AnswerSubmission(BaseModel):
    question_id: str = Field(..., min_length=1)
    answer: str
    current_question_index: Optional[int] = Field(None, ge=0)


class NavigateRequest(BaseModel):
    current_question_index: int = Field(..., ge=0)


class FlagRequest(BaseModel):
    question_id: str = Field(..., min_length=1)
    flagged: bool = True


class CompleteRequest(BaseModel):
    answers: Optional[Dict[str, Any]] = None  # final answers merged before grading
    feedback: Optional[Feedback] = None


class SessionMetadata(BaseModel):
    total_pauses: int
    total_resumes: int
    flagged_questions: List[str]


class SessionResponse(BaseModel):
    """Current state of a quiz session"""
    id: UUID
    quiz_id: UUID
    session_token: str
    status: str
    current_question_index: int
    answers: Dict[str, Any]
    total_questions: int
    time_limit: int
    time_spent: float
    time_remaining: float
    started_at: datetime
    last_activity_at: datetime
    paused_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    expires_at: datetime
    result_id: Optional[UUID] = None
    metadata: SessionMetadata

    @classmethod
    def from_session(cls, row) -> "SessionResponse":
        return cls(
            id=row.id,
            quiz_id=row.quiz_id,
            session_token=row.session_token,
            status=row.status,
            current_question_index=row.current_question_index,
            answers=row.answers or {},
            total_questions=row.total_questions,
            time_limit=row.time_limit,
            time_spent=round(row.time_spent or 0.0, 2),
            time_remaining=round(row.time_remaining or 0.0, 2),
            started_at=row.started_at,
            last_activity_at=row.last_activity_at,
            paused_at=row.paused_at,
            completed_at=row.completed_at,
            expires_at=row.expires_at,
            result_id=row.result_id,
            metadata=SessionMetadata(
                total_pauses=row.total_pauses,
                total_resumes=row.total_resumes,
                flagged_questions=list(row.flagged_questions or []),
            ),
        )


class SessionDetail(SessionResponse):
    """Session together with its quiz's questions"""
    questions: List[Dict[str, Any]]


class SessionCompleteResponse(BaseModel):
    session: SessionResponse
    result: QuizResultResponse
