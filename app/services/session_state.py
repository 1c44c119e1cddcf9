"""
Quiz session state machine

Pure transition function over an immutable ``SessionState``:

    apply_event(state, event, now) -> Transition(state, effects)

    active  --Pause-->    paused      (total_pauses += 1)
    paused  --Resume-->   active      (total_resumes += 1)
    active|paused --Complete--> completed   (effect: score the session)
    active|paused --Expire-->   expired
    active|paused --Abandon-->  abandoned

SubmitAnswer and Navigate need ``active``; SetFlag works in ``active``
or ``paused``. Any other combination raises ``SessionStateConflict``
and returns nothing, so the caller has nothing to persist. Time is only
counted while the session is active.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional, Tuple, Union

from app.exceptions import SessionStateConflict

ACTIVE = "active"
PAUSED = "paused"
COMPLETED = "completed"
EXPIRED = "expired"
ABANDONED = "abandoned"

OPEN_STATUSES = (ACTIVE, PAUSED)
TERMINAL_STATUSES = (COMPLETED, EXPIRED, ABANDONED)

EFFECT_SCORE = "score"


@dataclass(frozen=True)
class SessionState:
    status: str
    time_limit: int
    started_at: datetime
    last_activity_at: datetime
    expires_at: datetime
    answers: Dict[str, str] = field(default_factory=dict)
    question_times: Dict[str, float] = field(default_factory=dict)
    flagged_questions: Tuple[str, ...] = ()
    current_question_index: int = 0
    time_spent: float = 0.0
    last_resumed_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_pauses: int = 0
    total_resumes: int = 0

    @property
    def time_remaining(self) -> float:
        return max(0.0, self.time_limit - self.time_spent)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_overdue(self, now: datetime) -> bool:
        return self.status in OPEN_STATUSES and now >= self.expires_at

    def has_answer(self, question_id: str) -> bool:
        return question_id in self.answers


@dataclass(frozen=True)
class SubmitAnswer:
    question_id: str
    answer: str
    current_question_index: Optional[int] = None


@dataclass(frozen=True)
class Navigate:
    current_question_index: int


@dataclass(frozen=True)
class SetFlag:
    question_id: str
    flagged: bool = True


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Resume:
    pass


@dataclass(frozen=True)
class Complete:
    final_answers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Expire:
    pass


@dataclass(frozen=True)
class Abandon:
    pass


SessionEvent = Union[SubmitAnswer, Navigate, SetFlag, Pause, Resume, Complete, Expire, Abandon]


@dataclass(frozen=True)
class Transition:
    state: SessionState
    effects: Tuple[str, ...] = ()


def new_session_state(time_limit: int, now: datetime, expires_at: datetime) -> SessionState:
    """State of a freshly started session"""
    return SessionState(
        status=ACTIVE,
        time_limit=time_limit,
        started_at=now,
        last_activity_at=now,
        last_resumed_at=now,
        expires_at=expires_at,
    )


def upsert_answer(answers: Dict[str, str], question_id: str, answer: str) -> Dict[str, str]:
    """Copy of ``answers`` with one entry inserted or overwritten (position kept on overwrite)"""
    updated = dict(answers)
    updated[question_id] = answer
    return updated


def _elapsed(since: Optional[datetime], now: datetime) -> float:
    if since is None:
        return 0.0
    return max(0.0, (now - since).total_seconds())


def _accrue_time(state: SessionState, now: datetime) -> SessionState:
    """Add the active time since the last checkpoint to ``time_spent``"""
    if state.status != ACTIVE:
        return state
    return replace(
        state,
        time_spent=state.time_spent + _elapsed(state.last_resumed_at, now),
        last_resumed_at=now,
    )


def _require(state: SessionState, allowed: Tuple[str, ...], action: str) -> None:
    if state.status not in allowed:
        raise SessionStateConflict(f"Cannot {action} a session that is {state.status}", status=state.status)


def apply_event(state: SessionState, event: SessionEvent, now: datetime) -> Transition:
    """
    Apply one event to a session state

    Raises:
        SessionStateConflict: event not allowed in the current status
    """
    if isinstance(event, SubmitAnswer):
        _require(state, (ACTIVE,), "submit an answer to")
        spent_on_question = _elapsed(max(state.last_activity_at, state.last_resumed_at or state.last_activity_at), now)
        question_times = dict(state.question_times)
        question_times[event.question_id] = question_times.get(event.question_id, 0.0) + spent_on_question
        updated = replace(
            _accrue_time(state, now),
            answers=upsert_answer(state.answers, event.question_id, event.answer),
            question_times=question_times,
            last_activity_at=now,
        )
        if event.current_question_index is not None:
            updated = replace(updated, current_question_index=max(0, event.current_question_index))
        return Transition(updated)

    if isinstance(event, Navigate):
        _require(state, (ACTIVE,), "navigate")
        return Transition(replace(
            state,
            current_question_index=max(0, event.current_question_index),
            last_activity_at=now,
        ))

    if isinstance(event, SetFlag):
        _require(state, OPEN_STATUSES, "flag questions in")
        flagged = state.flagged_questions
        if event.flagged and event.question_id not in flagged:
            flagged = flagged + (event.question_id,)
        elif not event.flagged:
            flagged = tuple(q for q in flagged if q != event.question_id)
        return Transition(replace(state, flagged_questions=flagged, last_activity_at=now))

    if isinstance(event, Pause):
        _require(state, (ACTIVE,), "pause")
        return Transition(replace(
            _accrue_time(state, now),
            status=PAUSED,
            paused_at=now,
            last_resumed_at=None,
            last_activity_at=now,
            total_pauses=state.total_pauses + 1,
        ))

    if isinstance(event, Resume):
        _require(state, (PAUSED,), "resume")
        return Transition(replace(
            state,
            status=ACTIVE,
            paused_at=None,
            last_resumed_at=now,
            last_activity_at=now,
            total_resumes=state.total_resumes + 1,
        ))

    if isinstance(event, Complete):
        _require(state, OPEN_STATUSES, "complete")
        answers = dict(state.answers)
        for question_id, answer in (event.final_answers or {}).items():
            answers = upsert_answer(answers, question_id, answer)
        return Transition(
            replace(
                _accrue_time(state, now),
                status=COMPLETED,
                answers=answers,
                completed_at=now,
                last_resumed_at=None,
                last_activity_at=now,
            ),
            effects=(EFFECT_SCORE,),
        )

    if isinstance(event, Expire):
        _require(state, OPEN_STATUSES, "expire")
        return Transition(replace(_accrue_time(state, now), status=EXPIRED, last_resumed_at=None))

    if isinstance(event, Abandon):
        _require(state, OPEN_STATUSES, "abandon")
        return Transition(replace(_accrue_time(state, now), status=ABANDONED, last_resumed_at=None))

    raise TypeError(f"Unknown session event: {event!r}")
