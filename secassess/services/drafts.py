"""Active assessment session: the single transient draft being answered.

The manager keeps the draft in memory and flushes it to the
``assessment-draft`` key after every mutation.
"""
from __future__ import annotations

import enum
import logging
import threading
import uuid
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from secassess.exceptions import StateError, ValidationError
from secassess.schemas.draft import Draft, DraftProgress
from secassess.schemas.questionnaire import Option, Question
from secassess.services.scoring import resolve_answer, round_half_up
from secassess.services.storage import ACTIVE_DRAFT_KEY, SafeStorage
from secassess.services.validation import validate_questionnaire_data
from secassess.utils.datetime import utc_now

logger = logging.getLogger("secassess.drafts")


class DraftState(str, enum.Enum):
    NO_ACTIVE_DRAFT = "no_active_draft"
    ACTIVE_DRAFT = "active_draft"


class DraftLifecycleManager:
    def __init__(self, storage: SafeStorage):
        self.storage = storage
        self._lock = threading.RLock()
        self._draft: Optional[Draft] = None
        self.reload()

    # --- Views ---

    @property
    def state(self) -> DraftState:
        return DraftState.ACTIVE_DRAFT if self._draft is not None else DraftState.NO_ACTIVE_DRAFT

    @property
    def has_active_draft(self) -> bool:
        return self._draft is not None

    @property
    def current_draft(self) -> Optional[Draft]:
        with self._lock:
            return self._draft.model_copy(deep=True) if self._draft else None

    @property
    def answers(self) -> Dict[str, Option]:
        with self._lock:
            if not self._draft:
                return {}
            return {k: v.model_copy() for k, v in self._draft.answers.items()}

    @property
    def last_question_index(self) -> int:
        return self._draft.last_question_index if self._draft else 0

    @property
    def completion_percentage(self) -> int:
        with self._lock:
            if not self._draft or not self._draft.questions:
                return 0
            known = {q.id for q in self._draft.questions}
            answered = sum(1 for qid in self._draft.answers if qid in known)
            return round_half_up(answered / len(self._draft.questions) * 100)

    @property
    def progress(self) -> DraftProgress:
        with self._lock:
            if not self._draft:
                return DraftProgress()
            return DraftProgress(
                current=self._draft.last_question_index + 1,
                total=len(self._draft.questions),
                percentage=self.completion_percentage,
            )

    # --- Actions ---

    def start(self, assessment_type: str, questions: List[Any]) -> Draft:
        """Begin a new session for ``assessment_type``, replacing any active one."""
        if not isinstance(assessment_type, str) or not assessment_type.strip():
            raise ValidationError("Invalid assessment type", ["assessment_type must be a non-empty string"])
        errors = validate_questionnaire_data(questions)
        if errors:
            raise ValidationError("Invalid questions data", errors)
        try:
            snapshot = [
                q.model_copy(deep=True) if isinstance(q, Question) else Question.model_validate(q)
                for q in questions
            ]
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid questions data",
                [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
            ) from e

        with self._lock:
            if self._draft is not None:
                logger.warning(
                    "Overwriting active draft %s (%s) with a new %r session",
                    self._draft.id, self._draft.assessment_type, assessment_type,
                )
            now = utc_now()
            self._draft = Draft(
                id=f"draft-{uuid.uuid4().hex}",
                assessment_type=assessment_type,
                questions=snapshot,
                answers={},
                last_question_index=0,
                created_at=now,
                last_modified=now,
            )
            self._persist()
            logger.info("Started draft %s for %r (%d questions)", self._draft.id, assessment_type, len(snapshot))
            return self._draft.model_copy(deep=True)

    def update(self, answers: Optional[Mapping[Any, Any]], last_question_index: int) -> Draft:
        """Replace the answer set and cursor wholesale."""
        with self._lock:
            if self._draft is None:
                raise StateError("No active draft to update.")
            if isinstance(last_question_index, bool) or not isinstance(last_question_index, int) or last_question_index < 0:
                raise ValidationError("Invalid question index", ["last_question_index must be a non-negative integer"])
            resolved = self._resolve_answers(answers or {})
            self._draft.answers = resolved
            self._draft.last_question_index = last_question_index
            self._draft.last_modified = utc_now()
            self._persist()
            return self._draft.model_copy(deep=True)

    def resume(self, draft_data: Any) -> bool:
        """Load a saved draft (or its serialized form) as the active session."""
        data = draft_data.model_dump() if isinstance(draft_data, Draft) else draft_data
        if not isinstance(data, Mapping) or not data.get("id"):
            logger.error("Cannot resume draft: missing draft id")
            return False
        try:
            draft = Draft.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid draft data",
                [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
            ) from e
        known = {q.id for q in draft.questions}
        stale = [qid for qid in draft.answers if qid not in known]
        if stale:
            logger.warning("Dropping answers to unknown questions %s from draft %s", stale, draft.id)
            draft.answers = {qid: opt for qid, opt in draft.answers.items() if qid in known}
        with self._lock:
            if self._draft is not None and self._draft.id != draft.id:
                logger.warning("Replacing active draft %s with resumed draft %s", self._draft.id, draft.id)
            self._draft = draft
            self._persist()
            logger.info("Resumed draft %s (%s)", draft.id, draft.assessment_type)
            return True

    def set_owner(self, user_id: Optional[str], name: Optional[str], date: Any = None) -> None:
        """Attach checkpoint metadata after the draft was saved by its owner."""
        with self._lock:
            if self._draft is None:
                raise StateError("No active draft to update.")
            self._draft.user_id = user_id
            self._draft.name = name
            if date is not None:
                self._draft.date = date
            self._persist()

    def clear(self) -> None:
        with self._lock:
            if self._draft is not None:
                logger.info("Cleared draft %s", self._draft.id)
            self._draft = None
            self.storage.remove(ACTIVE_DRAFT_KEY)

    def reload(self) -> None:
        """Re-read the active draft from storage; unreadable data counts as no draft."""
        with self._lock:
            raw = self.storage.get(ACTIVE_DRAFT_KEY)
            if raw is None:
                self._draft = None
                return
            try:
                self._draft = Draft.model_validate(raw)
            except PydanticValidationError as e:
                logger.warning("Discarding corrupt active draft: %s", e)
                self._draft = None
                self.storage.remove(ACTIVE_DRAFT_KEY)

    # --- Internals ---

    def _resolve_answers(self, answers: Mapping[Any, Any]) -> Dict[str, Option]:
        by_id = {q.id: q for q in self._draft.questions}
        resolved: Dict[str, Option] = {}
        errors: List[str] = []
        for raw_id, value in answers.items():
            question_id = str(raw_id)
            question = by_id.get(question_id)
            if question is None:
                errors.append(f"Unknown question id: {question_id}")
                continue
            try:
                option = resolve_answer(question, value)
            except ValidationError as e:
                errors.extend(e.errors)
                continue
            if option is not None:
                resolved[question_id] = option
        if errors:
            raise ValidationError("Invalid answers", errors)
        return resolved

    def _persist(self) -> None:
        self.storage.set(ACTIVE_DRAFT_KEY, self._draft.model_dump(mode="json"))
