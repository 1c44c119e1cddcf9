"""
Quiz session service - persistence around the session state machine

Loads a session row, converts it to a ``SessionState``, applies one event
and writes the new state back. Completion also grades the attempt in
the same transaction.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.exceptions import QuizNotFound, SessionNotFound, SessionStateConflict
from app.models import Quiz, QuizResult, QuizSession
from app.services.scoring_service import scoring_service
from app.services.session_state import (
    EFFECT_SCORE,
    OPEN_STATUSES,
    Complete,
    Expire,
    Navigate,
    Pause,
    Resume,
    SessionEvent,
    SessionState,
    SetFlag,
    SubmitAnswer,
    Transition,
    apply_event,
    new_session_state,
)
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def state_from_row(row: QuizSession) -> SessionState:
    return SessionState(
        status=row.status,
        time_limit=row.time_limit,
        started_at=row.started_at,
        last_activity_at=row.last_activity_at,
        expires_at=row.expires_at,
        answers=dict(row.answers or {}),
        question_times=dict(row.question_times or {}),
        flagged_questions=tuple(row.flagged_questions or ()),
        current_question_index=row.current_question_index or 0,
        time_spent=row.time_spent or 0.0,
        last_resumed_at=row.last_resumed_at,
        paused_at=row.paused_at,
        completed_at=row.completed_at,
        total_pauses=row.total_pauses or 0,
        total_resumes=row.total_resumes or 0,
    )


def write_state(row: QuizSession, state: SessionState) -> None:
    row.status = state.status
    row.time_limit = state.time_limit
    row.started_at = state.started_at
    row.last_activity_at = state.last_activity_at
    row.expires_at = state.expires_at
    row.answers = dict(state.answers)
    row.question_times = dict(state.question_times)
    row.flagged_questions = list(state.flagged_questions)
    row.current_question_index = state.current_question_index
    row.time_spent = state.time_spent
    row.time_remaining = state.time_remaining
    row.last_resumed_at = state.last_resumed_at
    row.paused_at = state.paused_at
    row.completed_at = state.completed_at
    row.total_pauses = state.total_pauses
    row.total_resumes = state.total_resumes


class SessionService:
    """Session lifecycle operations keyed by (session token, owner id)"""

    def __init__(self, clock: Callable[[], datetime] = None, token_factory: Callable[[], str] = None):
        self.clock = clock or utcnow
        self.token_factory = token_factory or (lambda: secrets.token_hex(32))

    def start(self, db: Session, quiz: Quiz, owner_id: str) -> QuizSession:
        """
        Start a session for (owner, quiz), or return the one already open

        The time budget is questions x seconds-per-question; the session
        expires after the budget plus a grace buffer.
        """
        now = self.clock()
        existing = db.query(QuizSession).filter(
            QuizSession.owner_id == owner_id,
            QuizSession.quiz_id == quiz.id,
            QuizSession.status.in_(OPEN_STATUSES),
        ).order_by(QuizSession.started_at.desc()).first()

        if existing is not None:
            if not state_from_row(existing).is_overdue(now):
                logger.info(f"Returning open session {existing.id} for quiz {quiz.id}")
                return existing
            self._expire(db, existing, now)

        total_questions = len(quiz.questions or [])
        time_limit = total_questions * settings.SESSION_SECONDS_PER_QUESTION
        expires_at = now + timedelta(seconds=time_limit + settings.SESSION_GRACE_SECONDS)

        row = QuizSession(
            owner_id=owner_id,
            quiz_id=quiz.id,
            session_token=self.token_factory(),
            total_questions=total_questions,
        )
        write_state(row, new_session_state(time_limit, now, expires_at))
        db.add(row)
        db.commit()
        db.refresh(row)

        logger.info(f"Started session {row.id} for quiz {quiz.id} ({time_limit}s budget)")
        return row

    def get(self, db: Session, session_token: str, owner_id: str) -> QuizSession:
        """Read a session, expiring it first if its deadline has passed"""
        row = self._load(db, session_token, owner_id)
        now = self.clock()
        if state_from_row(row).is_overdue(now):
            self._expire(db, row, now)
        return row

    def submit_answer(
        self,
        db: Session,
        session_token: str,
        owner_id: str,
        question_id: str,
        answer: str,
        current_question_index: Optional[int] = None,
    ) -> QuizSession:
        return self._run(db, session_token, owner_id, SubmitAnswer(question_id, answer, current_question_index))

    def navigate(self, db: Session, session_token: str, owner_id: str, current_question_index: int) -> QuizSession:
        return self._run(db, session_token, owner_id, Navigate(current_question_index))

    def set_flag(self, db: Session, session_token: str, owner_id: str, question_id: str, flagged: bool) -> QuizSession:
        return self._run(db, session_token, owner_id, SetFlag(question_id, flagged))

    def pause(self, db: Session, session_token: str, owner_id: str) -> QuizSession:
        return self._run(db, session_token, owner_id, Pause())

    def resume(self, db: Session, session_token: str, owner_id: str) -> QuizSession:
        return self._run(db, session_token, owner_id, Resume())

    def complete(
        self,
        db: Session,
        session_token: str,
        owner_id: str,
        final_answers: Optional[Dict[str, Any]] = None,
        feedback: Optional[Dict[str, Any]] = None,
    ) -> Tuple[QuizSession, QuizResult]:
        """
        Complete the session and grade it before returning

        Session update, result insert and statistics update commit together.
        """
        row = self._load(db, session_token, owner_id)
        now = self.clock()
        final_answers = {str(k): v for k, v in (final_answers or {}).items()}

        try:
            transition = self._transition(db, row, Complete(final_answers), now)
            if EFFECT_SCORE in transition.effects:
                result = self._score(db, row, feedback)
                row.result_id = result.id
            db.commit()
        except StaleDataError:
            db.rollback()
            raise SessionStateConflict("Session was modified concurrently; reload and retry")
        except QuizNotFound:
            db.rollback()
            raise

        db.refresh(row)
        logger.info(f"Session {row.id} completed with score {result.score}/{result.total_questions}")
        return row, result

    def _score(self, db: Session, row: QuizSession, feedback: Optional[Dict[str, Any]]) -> QuizResult:
        quiz = db.get(Quiz, row.quiz_id)
        if quiz is None:
            raise QuizNotFound(f"Quiz {row.quiz_id} no longer exists")

        return scoring_service.record_result(
            db,
            quiz,
            owner_id=row.owner_id,
            answers=row.answers,
            time_taken=round(row.time_spent, 2),
            completed_at=row.completed_at,
            question_times=row.question_times,
            session_id=row.id,
            feedback=feedback,
        )

    def _load(self, db: Session, session_token: str, owner_id: str) -> QuizSession:
        row = db.query(QuizSession).filter(
            QuizSession.session_token == session_token,
            QuizSession.owner_id == owner_id,
        ).first()
        if row is None:
            raise SessionNotFound("Quiz session not found")
        return row

    def _run(self, db: Session, session_token: str, owner_id: str, event: SessionEvent) -> QuizSession:
        row = self._load(db, session_token, owner_id)
        self._transition(db, row, event, self.clock())
        self._commit(db)
        db.refresh(row)
        return row

    def _transition(self, db: Session, row: QuizSession, event: SessionEvent, now: datetime) -> Transition:
        """Apply ``event`` to ``row`` in memory; an overdue session is expired (and committed) first"""
        state = state_from_row(row)
        if state.is_overdue(now):
            state = self._expire(db, row, now)

        try:
            transition = apply_event(state, event, now)
        except SessionStateConflict:
            logger.warning(f"Rejected {type(event).__name__} on session {row.id} ({state.status})")
            raise

        write_state(row, transition.state)
        logger.info(f"Session {row.id}: {type(event).__name__} -> {transition.state.status}")
        return transition

    def _expire(self, db: Session, row: QuizSession, now: datetime) -> SessionState:
        expired = apply_event(state_from_row(row), Expire(), now).state
        write_state(row, expired)
        self._commit(db)
        logger.info(f"Session {row.id} expired at {row.expires_at.isoformat()}")
        return expired

    def _commit(self, db: Session) -> None:
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            raise SessionStateConflict("Session was modified concurrently; reload and retry")


# Global instance
session_service = SessionService()
