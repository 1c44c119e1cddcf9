from datetime import datetime, timedelta

import pytest

from app.exceptions import SessionStateConflict
from app.services.session_state import (
    ACTIVE,
    COMPLETED,
    EFFECT_SCORE,
    EXPIRED,
    PAUSED,
    Abandon,
    Complete,
    Expire,
    Navigate,
    Pause,
    Resume,
    SetFlag,
    SubmitAnswer,
    apply_event,
    new_session_state,
)

T0 = datetime(2024, 1, 1, 12, 0, 0)


def _state():
    return new_session_state(time_limit=240, now=T0, expires_at=T0 + timedelta(seconds=540))


def _at(seconds):
    return T0 + timedelta(seconds=seconds)


def test_new_session_is_active():
    state = _state()
    assert state.status == ACTIVE
    assert state.time_remaining == 240
    assert not state.is_terminal


def test_submit_answer_upserts_and_tracks_time():
    state = apply_event(_state(), SubmitAnswer("q1", "A", current_question_index=1), _at(10)).state
    state = apply_event(state, SubmitAnswer("q2", "B"), _at(25)).state
    state = apply_event(state, SubmitAnswer("q1", "C"), _at(30)).state

    assert state.answers == {"q1": "C", "q2": "B"}
    assert list(state.answers) == ["q1", "q2"]
    assert state.question_times == {"q1": 15.0, "q2": 15.0}
    assert state.time_spent == 30.0
    assert state.current_question_index == 1
    assert state.last_activity_at == _at(30)
    assert state.has_answer("q2")


def test_pause_twice_is_rejected_and_counts_once():
    paused = apply_event(_state(), Pause(), _at(20)).state
    assert paused.status == PAUSED
    assert paused.total_pauses == 1
    assert paused.time_spent == 20.0

    with pytest.raises(SessionStateConflict):
        apply_event(paused, Pause(), _at(25))
    assert paused.total_pauses == 1


def test_paused_time_is_not_counted():
    state = apply_event(_state(), Pause(), _at(20)).state
    state = apply_event(state, Resume(), _at(120)).state
    assert state.status == ACTIVE
    assert state.total_resumes == 1

    state = apply_event(state, SubmitAnswer("q1", "A"), _at(130)).state
    assert state.time_spent == 30.0
    assert state.question_times["q1"] == 10.0


def test_answers_and_navigation_need_active():
    paused = apply_event(_state(), Pause(), _at(5)).state
    with pytest.raises(SessionStateConflict):
        apply_event(paused, SubmitAnswer("q1", "A"), _at(6))
    with pytest.raises(SessionStateConflict):
        apply_event(paused, Navigate(2), _at(6))
    with pytest.raises(SessionStateConflict):
        apply_event(_state(), Resume(), _at(6))


def test_flag_toggle_is_idempotent_and_works_while_paused():
    state = apply_event(_state(), SetFlag("q2"), _at(1)).state
    state = apply_event(state, SetFlag("q2"), _at(2)).state
    assert state.flagged_questions == ("q2",)

    paused = apply_event(state, Pause(), _at(3)).state
    paused = apply_event(paused, SetFlag("q1"), _at(4)).state
    paused = apply_event(paused, SetFlag("q2", flagged=False), _at(5)).state
    assert paused.flagged_questions == ("q1",)


def test_complete_merges_final_answers_and_requests_scoring():
    state = apply_event(_state(), SubmitAnswer("q1", "A"), _at(10)).state
    transition = apply_event(state, Complete({"q1": "B", "q3": "Paris"}), _at(40))

    assert transition.state.status == COMPLETED
    assert transition.state.answers == {"q1": "B", "q3": "Paris"}
    assert transition.state.completed_at == _at(40)
    assert transition.state.time_spent == 40.0
    assert transition.effects == (EFFECT_SCORE,)


def test_complete_from_paused():
    paused = apply_event(_state(), Pause(), _at(10)).state
    completed = apply_event(paused, Complete(), _at(100)).state
    assert completed.status == COMPLETED
    assert completed.time_spent == 10.0


@pytest.mark.parametrize("terminal_event", [Complete(), Expire(), Abandon()])
@pytest.mark.parametrize("next_event", [
    SubmitAnswer("q1", "A"), Pause(), Resume(), Complete(), Expire(), Abandon(), SetFlag("q1"), Navigate(1),
])
def test_terminal_states_reject_everything(terminal_event, next_event):
    terminal = apply_event(_state(), terminal_event, _at(10)).state
    assert terminal.is_terminal
    with pytest.raises(SessionStateConflict):
        apply_event(terminal, next_event, _at(20))


def test_overdue_detection():
    state = _state()
    assert not state.is_overdue(_at(539))
    assert state.is_overdue(_at(540))
    expired = apply_event(state, Expire(), _at(600)).state
    assert expired.status == EXPIRED
    assert not expired.is_overdue(_at(700))
