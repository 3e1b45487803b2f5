import json

import pytest

from secassess.exceptions import StateError, ValidationError
from secassess.services.drafts import DraftLifecycleManager, DraftState
from secassess.services.storage import ACTIVE_DRAFT_KEY, MemoryKeyValueStore, SafeStorage


def test_no_active_draft_by_default(drafts):
    assert drafts.state == DraftState.NO_ACTIVE_DRAFT
    assert drafts.current_draft is None
    assert drafts.answers == {}
    assert drafts.completion_percentage == 0
    assert drafts.progress.total == 0


def test_start_creates_fresh_draft(drafts, website_questions):
    draft = drafts.start("Web check", website_questions)
    assert drafts.state == DraftState.ACTIVE_DRAFT
    assert draft.id.startswith("draft-")
    assert draft.answers == {}
    assert draft.last_question_index == 0
    assert [q.id for q in draft.questions] == ["q1", "q2"]
    assert draft.created_at == draft.last_modified


def test_draft_round_trip_through_storage(storage, website_questions):
    manager = DraftLifecycleManager(storage)
    started = manager.start("Web check", website_questions)
    manager.update({"q1": 0, "q2": website_questions[1]["options"][3]}, 1)

    reloaded = DraftLifecycleManager(storage)
    assert reloaded.current_draft.id == started.id
    assert reloaded.last_question_index == 1
    assert reloaded.answers["q1"].score == 2
    assert reloaded.answers["q2"].score == -1


def test_update_replaces_answers_wholesale(drafts, website_questions):
    drafts.start("Web check", website_questions)
    drafts.update({"q1": 0, "q2": 1}, 1)
    drafts.update({"q2": 4}, 1)
    assert list(drafts.answers) == ["q2"]


def test_update_without_active_draft(drafts):
    with pytest.raises(StateError) as exc:
        drafts.update({}, 0)
    assert str(exc.value) == "No active draft to update."


def test_update_rejects_negative_index_and_unknown_questions(drafts, website_questions):
    drafts.start("Web check", website_questions)
    with pytest.raises(ValidationError):
        drafts.update({}, -1)
    with pytest.raises(ValidationError) as exc:
        drafts.update({"nope": 0}, 0)
    assert "Unknown question id: nope" in exc.value.errors


def test_start_lists_every_question_problem(drafts):
    bad = [
        {"id": "a", "text": "", "category": "X", "options": []},
        {"id": "b", "text": "B", "category": "X", "options": [{"text": "o", "score": 0}]},
    ]
    with pytest.raises(ValidationError) as exc:
        drafts.start("Web check", bad)
    assert exc.value.errors == [
        "Question 1 missing required field: text",
        "Question 1 missing or invalid options list",
        "Question 2, Option 1 missing required field: recommendation",
    ]
    assert drafts.state == DraftState.NO_ACTIVE_DRAFT


def test_start_requires_assessment_type(drafts, website_questions):
    with pytest.raises(ValidationError):
        drafts.start("  ", website_questions)


def test_start_overwrites_active_draft(drafts, website_questions, caplog):
    first = drafts.start("Web check", website_questions)
    second = drafts.start("Web check", website_questions)
    assert first.id != second.id
    assert "Overwriting active draft" in caplog.text


def test_progress_and_completion(drafts, website_questions):
    drafts.start("Web check", website_questions)
    drafts.update({"q1": 0}, 1)
    assert drafts.completion_percentage == 50
    progress = drafts.progress
    assert (progress.current, progress.total, progress.percentage) == (2, 2, 50)


def test_resume_without_id_changes_nothing(drafts, website_questions):
    active = drafts.start("Web check", website_questions)
    assert drafts.resume({"assessment_type": "Web check"}) is False
    assert drafts.current_draft.id == active.id


def test_resume_loads_draft_as_active(drafts, website_questions):
    assert drafts.resume({
        "id": "draft-saved",
        "assessment_type": "Web check",
        "questions": website_questions,
        "answers": {"q1": website_questions[0]["options"][0]},
        "last_question_index": 1,
    }) is True
    assert drafts.current_draft.id == "draft-saved"
    assert drafts.last_question_index == 1


def test_clear_removes_stored_draft(storage, memory_store, website_questions):
    manager = DraftLifecycleManager(storage)
    manager.start("Web check", website_questions)
    assert memory_store.get_item(ACTIVE_DRAFT_KEY) is not None
    manager.clear()
    assert manager.state == DraftState.NO_ACTIVE_DRAFT
    assert memory_store.get_item(ACTIVE_DRAFT_KEY) is None


def test_corrupt_stored_draft_is_treated_as_absent():
    store = MemoryKeyValueStore({ACTIVE_DRAFT_KEY: "{not json"})
    assert DraftLifecycleManager(SafeStorage(store)).state == DraftState.NO_ACTIVE_DRAFT

    store = MemoryKeyValueStore({ACTIVE_DRAFT_KEY: json.dumps({"unexpected": True})})
    manager = DraftLifecycleManager(SafeStorage(store))
    assert manager.state == DraftState.NO_ACTIVE_DRAFT
    assert store.get_item(ACTIVE_DRAFT_KEY) is None


def test_update_without_active_draft_checks_state_first(drafts):
    with pytest.raises(StateError):
        drafts.update({}, -1)


def test_resume_drops_answers_to_unknown_questions(drafts, website_questions):
    option = website_questions[0]["options"][0]
    drafts.resume({
        "id": "draft-stale",
        "assessment_type": "Web check",
        "questions": website_questions,
        "answers": {"q1": option, "q2": option, "gone-1": option, "gone-2": option},
    })
    assert sorted(drafts.answers) == ["q1", "q2"]
    assert drafts.completion_percentage == 100
