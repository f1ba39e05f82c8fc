"""
Unit tests for the quiz session state machine.

Covers lifecycle transitions, state guards, per-format grading through the
session, event emission, skip/timeout, snapshots and the length cap.
"""

import copy

import pytest

from quizzer.events import EventType
from quizzer.session import SessionPhase


def _mc(pid: str, correct: int = 0, tags=None) -> dict:
    return {
        "id": pid,
        "type": "multiple-choice",
        "question": f"Question {pid}",
        "options": ["a", "b", "c"],
        "correct": correct,
        "tags": tags or [],
    }


class Recorder:
    """Collects (event, payload) pairs from a session."""

    def __init__(self, session):
        self.events = []
        for event in EventType:
            session.on(event, lambda payload, event=event: self.events.append((event, payload)))

    def of(self, event):
        return [payload for name, payload in self.events if name == event]

    def clear(self):
        self.events.clear()


@pytest.fixture
def session(make_session):
    return make_session()


def _start_with(session, questions, **kwargs):
    session.load_questions(questions, **kwargs)
    session.start()
    return session


class TestStateMachine:
    """Test lifecycle transitions."""

    def test_starts_idle(self, session):
        assert session.phase == SessionPhase.IDLE
        assert session.current_question is None

    def test_idle_to_practicing_on_start(self, session):
        _start_with(session, [_mc("q1")])
        assert session.phase == SessionPhase.PRACTICING
        assert session.current_question.id == "q1"

    def test_practicing_to_answered(self, session):
        _start_with(session, [_mc("q1")])
        session.select_option(0)
        assert session.phase == SessionPhase.ANSWERED

    def test_answered_to_practicing_when_more_remain(self, session):
        _start_with(session, [_mc("q1"), _mc("q2")])
        session.select_option(0)
        session.next_question()
        assert session.phase == SessionPhase.PRACTICING
        assert session.progress == {"current": 2, "total": 2}

    def test_answered_to_complete_on_last(self, session):
        _start_with(session, [_mc("q1")])
        session.select_option(0)
        session.next_question()
        assert session.phase == SessionPhase.COMPLETE
        assert session.current_question is None

    def test_start_with_no_questions_is_noop(self, session):
        recorder = Recorder(session)
        session.load_questions([])
        session.start()
        assert session.phase == SessionPhase.IDLE
        assert recorder.of(EventType.QUESTION_SHOW) == []

    def test_reset_returns_to_idle_and_clears(self, session):
        _start_with(session, [_mc("q1")], context={"unitTitle": "Unit 1"})
        session.select_option(0)
        session.reset()

        assert session.phase == SessionPhase.IDLE
        assert session.answers == []
        assert session.context == {}
        assert session.questions == []

    def test_retry_redraws_and_practices(self, session):
        _start_with(session, [_mc("q1"), _mc("q2"), _mc("q3")])
        for _ in range(3):
            session.select_option(0)
            session.next_question()
        assert session.phase == SessionPhase.COMPLETE

        session.retry()
        assert session.phase == SessionPhase.PRACTICING
        assert session.answers == []
        assert sorted(q.id for q in session.questions) == ["q1", "q2", "q3"]

    def test_retry_on_empty_pool_is_noop(self, session):
        session.retry()
        assert session.phase == SessionPhase.IDLE


class TestStateGuards:
    """Submissions outside practicing produce no record and no event."""

    def test_select_option_ignored_in_idle(self, session):
        session.load_questions([_mc("q1")])
        recorder = Recorder(session)
        session.select_option(0)
        assert session.answers == []
        assert recorder.events == []

    def test_next_ignored_while_practicing(self, session):
        _start_with(session, [_mc("q1"), _mc("q2")])
        session.next_question()
        assert session.progress["current"] == 1

    def test_double_answer_ignored(self, session):
        _start_with(session, [_mc("q1")])
        recorder = Recorder(session)
        session.select_option(0)
        session.select_option(1)
        assert len(session.answers) == 1
        assert len(recorder.of(EventType.OPTION_SELECTED)) == 1

    def test_out_of_range_option_ignored(self, session):
        _start_with(session, [_mc("q1")])
        session.select_option(7)
        assert session.phase == SessionPhase.PRACTICING
        assert session.answers == []

    def test_wrong_format_operation_ignored(self, session, numeric_question):
        _start_with(session, [numeric_question])
        session.select_option(0)
        session.submit_ordering()
        session.submit_multi_select()
        assert session.answers == []

    def test_submit_numeric_ignores_blank(self, session, numeric_question):
        _start_with(session, [numeric_question])
        session.submit_numeric("   ")
        assert session.phase == SessionPhase.PRACTICING
        assert session.answers == []

    def test_multi_step_submission_after_answer_ignored(self, session, multi_select_question):
        _start_with(session, [multi_select_question])
        session.toggle_multi_select(0)
        session.submit_multi_select()
        recorder = Recorder(session)
        session.toggle_multi_select(1)
        session.submit_multi_select()
        assert len(session.answers) == 1
        assert recorder.events == []


class TestGradingThroughSession:
    """Per-format grading and result events."""

    def test_multiple_choice_event(self, session, mc_question):
        _start_with(session, [mc_question])
        recorder = Recorder(session)
        session.select_option(2)

        (payload,) = recorder.of(EventType.OPTION_SELECTED)
        assert payload.correct is True
        assert payload.correct_index == 2
        assert payload.explanation == "Routing happens at layer 3."
        assert payload.detailed_explanation is None

    def test_numeric_suffix_scenario(self, session, numeric_question):
        _start_with(session, [numeric_question])
        recorder = Recorder(session)
        session.submit_numeric("5K")

        (payload,) = recorder.of(EventType.NUMERIC_RESULT)
        assert payload.correct is True
        assert payload.user_value == 5000
        assert payload.formatted == "5K"
        assert payload.unit == "hosts"
        assert session.answers[0].user_value == 5000

    def test_numeric_garbage_graded_incorrect(self, session, numeric_question):
        _start_with(session, [numeric_question])
        session.submit_numeric("no idea")
        assert session.phase == SessionPhase.ANSWERED
        assert session.answers[0].correct is False

    def test_ordering_shuffle_is_shown(self, session, ordering_question):
        recorder = Recorder(session)
        _start_with(session, [ordering_question])

        (show,) = recorder.of(EventType.QUESTION_SHOW)
        assert sorted(item.original_index for item in show.shuffled_items) == [0, 1, 2]
        for item in show.shuffled_items:
            assert item.text == ordering_question["items"][item.original_index]

    def test_ordering_reversed_scenario(self, session, ordering_question):
        recorder = Recorder(session)
        _start_with(session, [ordering_question])
        start = [item.original_index for item in recorder.of(EventType.QUESTION_SHOW)[0].shuffled_items]

        # Rearrange the displayed order into [2, 1, 0] one move at a time
        current = list(start)
        for target_pos, value in enumerate([2, 1, 0]):
            from_pos = current.index(value)
            session.move_ordering_item(from_pos, target_pos)
            current.insert(target_pos, current.pop(from_pos))
        session.submit_ordering()

        (result,) = recorder.of(EventType.ORDERING_RESULT)
        assert result.correct is False
        assert result.user_order == [2, 1, 0]
        assert session.answers[0].user_order == [2, 1, 0]

    def test_ordering_move_out_of_bounds_ignored(self, session, ordering_question):
        _start_with(session, [ordering_question])
        recorder = Recorder(session)
        session.move_ordering_item(0, 5)
        session.move_ordering_item(-1, 0)
        assert recorder.of(EventType.ORDERING_UPDATE) == []

    def test_ordering_update_event(self, session, ordering_question):
        recorder = Recorder(session)
        _start_with(session, [ordering_question])
        start = [i.original_index for i in recorder.of(EventType.QUESTION_SHOW)[0].shuffled_items]
        session.move_ordering_item(0, 2)

        (update,) = recorder.of(EventType.ORDERING_UPDATE)
        assert update.order == start[1:] + start[:1]

    def test_multi_select_excess_scenario(self, session, multi_select_question):
        _start_with(session, [multi_select_question])
        recorder = Recorder(session)
        for index in (0, 1, 2):
            session.toggle_multi_select(index)
        session.submit_multi_select()

        toggles = recorder.of(EventType.MULTI_SELECT_TOGGLE)
        assert [t.selected for t in toggles] == [True, True, True]
        (result,) = recorder.of(EventType.MULTI_SELECT_RESULT)
        assert result.correct is False
        assert result.selected == [0, 1, 2]

    def test_multi_select_toggle_off(self, session, multi_select_question):
        _start_with(session, [multi_select_question])
        for index in (0, 1, 1, 2):
            session.toggle_multi_select(index)
        session.submit_multi_select()
        assert session.answers[0].correct is True
        assert session.answers[0].selected == [0, 2]

    def test_two_stage_both_correct(self, session, two_stage_question):
        _start_with(session, [two_stage_question])
        session.select_option(0)
        assert session.phase == SessionPhase.PRACTICING
        session.select_option(1)
        assert session.phase == SessionPhase.ANSWERED
        assert session.answers[0].correct is True

    def test_two_stage_first_wrong_scenario(self, session, two_stage_question):
        _start_with(session, [two_stage_question])
        recorder = Recorder(session)
        session.select_option(1)
        session.select_option(1)

        (advance,) = recorder.of(EventType.TWO_STAGE_ADVANCE)
        assert advance.stage_result.correct is False
        assert advance.next_stage.previous_answer == "ARP"
        assert advance.next_stage.question == "Which layer does it live in?"

        (final,) = recorder.of(EventType.OPTION_SELECTED)
        assert final.correct is True
        assert final.is_final_stage is True
        assert final.all_correct is False
        assert final.explanation == "Network layer."
        assert final.references == [{"title": "RFC 791"}]

        assert session.answers[0].correct is False
        assert session.score.correct == 0
        assert session.score.total == 1


class TestSkipAndTimeout:
    """Test bypassing questions."""

    def test_skip_advances(self, session):
        _start_with(session, [_mc("q1"), _mc("q2")])
        first = session.current_question.id
        session.skip()
        assert session.phase == SessionPhase.PRACTICING
        assert session.current_question.id != first

    def test_skip_emits_payload(self, session):
        _start_with(session, [_mc("q1"), _mc("q2")])
        recorder = Recorder(session)
        pid = session.current_question.id
        session.skip()

        (payload,) = recorder.of(EventType.SKIP)
        assert (payload.problem_id, payload.index, payload.total) == (pid, 0, 2)
        assert recorder.of(EventType.STATE_CHANGE) == []

    def test_all_skipped_scenario(self, session):
        recorder = Recorder(session)
        _start_with(session, [_mc("q1"), _mc("q2"), _mc("q3")])
        for _ in range(3):
            session.skip()

        assert session.phase == SessionPhase.COMPLETE
        score = session.score
        assert (score.correct, score.total, score.skipped) == (0, 0, 3)
        (complete,) = recorder.of(EventType.COMPLETE)
        assert complete.session_summary["score"]["skipped"] == 3

    def test_skip_ignored_when_answered(self, session):
        _start_with(session, [_mc("q1"), _mc("q2")])
        session.select_option(0)
        session.skip()
        assert len(session.answers) == 1

    def test_timeout_recorded_and_excluded_from_score(self, session):
        _start_with(session, [_mc("q1"), _mc("q2")])
        session.timeout()
        session.select_option(0)

        assert session.answers[0].timed_out is True
        assert session.answers[0].skipped is False
        assert session.score.timed_out == 1
        assert session.score.total == 1


class TestEvents:
    """Test the listener registry."""

    def test_on_returns_session_for_chaining(self, session):
        assert session.on(EventType.SKIP, lambda p: None) is session

    def test_off_removes_listener(self, session):
        calls = []
        listener = calls.append
        session.on(EventType.QUESTION_SHOW, listener).off(EventType.QUESTION_SHOW, listener)
        _start_with(session, [_mc("q1")])
        assert calls == []

    def test_listeners_called_in_registration_order(self, session):
        order = []
        session.on("stateChange", lambda p: order.append("first"))
        session.on("stateChange", lambda p: order.append("second"))
        _start_with(session, [_mc("q1")])
        assert order == ["first", "second"]

    def test_state_change_payload(self, session):
        recorder = Recorder(session)
        _start_with(session, [_mc("q1")])
        (change,) = recorder.of(EventType.STATE_CHANGE)
        assert (change.from_state, change.to_state) == ("idle", "practicing")

    def test_complete_payload(self, session):
        _start_with(session, [_mc("q1", correct=1)])
        recorder = Recorder(session)
        session.select_option(1)
        session.next_question()

        (complete,) = recorder.of(EventType.COMPLETE)
        assert (complete.correct, complete.total, complete.percentage) == (1, 1, 100)
        assert complete.session_summary["results"][0]["id"] == "q1"

    def test_unknown_event_name_ignored(self, session):
        calls = []
        session.on("noSuchEvent", calls.append).off("noSuchEvent", calls.append)
        _start_with(session, [_mc("q1")])
        assert calls == []

    def test_listener_errors_propagate(self, session):
        def boom(payload):
            raise RuntimeError("listener failed")

        session.on(EventType.QUESTION_SHOW, boom)
        session.load_questions([_mc("q1")])
        with pytest.raises(RuntimeError):
            session.start()


class TestLoading:
    """Test load_questions and the length cap."""

    def test_caller_mutation_does_not_affect_retry(self, session):
        questions = [_mc("q1"), _mc("q2")]
        session.load_questions(questions)
        questions.append(_mc("q3"))
        questions[0]["correct"] = 2
        session.retry()

        assert sorted(q.id for q in session.questions) == ["q1", "q2"]
        assert {q.id: q.correct for q in session.questions}["q1"] == 0

    def test_caller_reference_mutation_does_not_leak(self, session, mc_question):
        mc_question["references"] = [{"title": "RFC 791"}]
        session.load_questions([mc_question])
        mc_question["references"][0]["title"] = "changed"

        assert session.questions[0].references == ({"title": "RFC 791"},)

    def test_invalid_records_dropped(self, session):
        session.load_questions([_mc("q1"), {"id": "bad", "type": "ordering", "question": "?"}])
        assert [q.id for q in session.questions] == ["q1"]

    def test_cap_respected(self, session):
        session.load_questions([_mc(f"q{i}") for i in range(5)], max_problems=3)
        assert len(session.questions) == 3

    def test_retry_respects_cap(self, session):
        session.load_questions([_mc(f"q{i}") for i in range(5)], max_problems=2)
        session.start()
        session.retry()
        assert len(session.questions) == 2

    def test_zero_cap_is_unlimited(self, session):
        session.load_questions([_mc(f"q{i}") for i in range(5)], max_problems=0)
        assert len(session.questions) == 5

    def test_zero_type_weight_excludes_type(self, make_session, numeric_question):
        session = make_session(type_weights={"numeric-input": 0})
        session.load_questions([_mc("q1"), numeric_question])
        assert [q.id for q in session.questions] == ["q1"]

    def test_type_weights_merge_settings_defaults(self, make_session):
        session = make_session(type_weights={"ordering": 5})
        weights = session.type_weights
        assert weights["ordering"] == 5
        assert weights["numeric-input"] == 1.5

    def test_tracking_weights_the_draw(self, make_session):
        tracking = {"weak": {"seen": 5, "correct": 0, "lastSeen": "2025-03-01T12:00:00Z"}}
        pool = [_mc("weak")] + [_mc(f"q{i}") for i in range(3)]
        firsts = 0
        for _ in range(100):
            session = make_session()
            session.load_questions(pool, tracking=tracking)
            firsts += session.questions[0].id == "weak"
        # weight 2 against three 1.5s: about 31% of first draws
        assert firsts > 15


class TestSnapshots:
    """Test snapshot / restore / resume."""

    def test_restore_and_resume_mid_session(self, session, make_session):
        _start_with(session, [_mc("q1"), _mc("q2"), _mc("q3")], context={"unitTitle": "U"})
        session.select_option(0)
        session.next_question()
        snapshot = session.get_snapshot()

        restored = make_session()
        restored.restore_session(snapshot)
        assert restored.phase == SessionPhase.IDLE

        recorder = Recorder(restored)
        restored.resume()
        assert restored.phase == SessionPhase.PRACTICING
        assert [q.id for q in restored.questions] == [q.id for q in session.questions]
        (show,) = recorder.of(EventType.QUESTION_SHOW)
        assert show.index == 1
        assert restored.context == {"unitTitle": "U"}

    def test_resume_finished_snapshot_completes(self, session, make_session):
        _start_with(session, [_mc("q1")])
        session.select_option(0)
        snapshot = session.get_snapshot().to_dict()

        restored = make_session()
        restored.restore_session(snapshot)
        recorder = Recorder(restored)
        restored.resume()

        assert restored.phase == SessionPhase.COMPLETE
        assert len(recorder.of(EventType.COMPLETE)) == 1

    def test_snapshot_is_a_copy(self, session):
        _start_with(session, [_mc("q1"), _mc("q2")], context={"unitTitle": "U"})
        session.select_option(0)
        snapshot = session.get_snapshot()
        snapshot.answers[0].correct = not snapshot.answers[0].correct
        snapshot.context["unitTitle"] = "changed"

        assert session.answers[0].correct != snapshot.answers[0].correct
        assert session.context == {"unitTitle": "U"}

    def test_listener_cannot_mutate_snapshot_references(self, session, two_stage_question):
        _start_with(session, [two_stage_question])
        snapshot = session.get_snapshot()
        session.on(EventType.OPTION_SELECTED, lambda p: p.references[0].update(title="changed"))
        session.select_option(0)
        session.select_option(1)

        assert snapshot.problems[0].references == ({"title": "RFC 791"},)
        assert session.questions[0].references == ({"title": "RFC 791"},)

    def test_snapshot_round_trips_through_dict(self, session, make_session, two_stage_question):
        _start_with(session, [two_stage_question, _mc("q1")])
        data = copy.deepcopy(session.get_snapshot().to_dict())

        restored = make_session()
        restored.restore_session(data)
        assert [q.id for q in restored.questions] == [q.id for q in session.questions]

    def test_resume_ignored_outside_idle(self, session):
        _start_with(session, [_mc("q1")])
        session.resume()
        assert session.phase == SessionPhase.PRACTICING
