"""Questionnaire catalog: assessment name -> ordered questions.

The catalog is a plain in-process registry. It starts from the seed data in
``secassess.core.questionnaire_data`` and can be extended by authoring code
through ``add_questionnaire`` / ``update_questionnaire``.
"""
from __future__ import annotations

import copy
import logging
import re
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError

from secassess.core.questionnaire_data import build_seed_questionnaires
from secassess.exceptions import ConflictError, ValidationError
from secassess.schemas.questionnaire import Question, Questionnaire
from secassess.services.validation import validate_questionnaire_data
from secassess.utils.datetime import utc_now

logger = logging.getLogger("secassess.catalog")

_KEY_STRIP = re.compile(r"[^a-z0-9]+")


def category_key(name: str) -> str:
    """Stable key for a category name: 'Devices & Network' -> 'devices_network'."""
    return _KEY_STRIP.sub("_", (name or "").lower()).strip("_")


def ordered_categories(questions: Iterable[Question], declared: Optional[Iterable[str]] = None) -> List[str]:
    """Declared categories first (in order), then any undeclared ones by first appearance."""
    out: List[str] = []
    for name in declared or []:
        if name not in out:
            out.append(name)
    for q in questions:
        if q.category not in out:
            out.append(q.category)
    return out


def key_collisions(names: Iterable[str]) -> List[str]:
    """Messages for distinct category names that share one key."""
    seen: Dict[str, str] = {}
    errors: List[str] = []
    for name in names:
        key = category_key(name)
        if key in seen and seen[key] != name:
            errors.append(f"Categories {seen[key]!r} and {name!r} share the key {key!r}")
        seen.setdefault(key, name)
    return errors


class QuestionnaireCatalog:
    def __init__(self, questionnaires: Optional[Iterable[Any]] = None):
        source = build_seed_questionnaires() if questionnaires is None else questionnaires
        self._lock = threading.RLock()
        self._questionnaires: List[Questionnaire] = [
            Questionnaire.model_validate(copy.deepcopy(_as_dict(q))) for q in source
        ]
        for qn in self._questionnaires:
            self._stamp_questions(qn)

    # --- Getters ---

    def list_questionnaires(self) -> List[Questionnaire]:
        with self._lock:
            return [qn.model_copy(deep=True) for qn in self._questionnaires]

    def available_assessments(self) -> List[str]:
        with self._lock:
            return [qn.name for qn in self._questionnaires if qn.is_active]

    def get_questionnaire_by_id(self, questionnaire_id: Any) -> Optional[Questionnaire]:
        # Route-style ids arrive as strings
        try:
            numeric_id = int(questionnaire_id)
        except (TypeError, ValueError):
            return None
        with self._lock:
            for qn in self._questionnaires:
                if qn.id == numeric_id:
                    return qn.model_copy(deep=True)
        return None

    def get_questionnaire(self, assessment_name: str) -> Optional[Questionnaire]:
        with self._lock:
            qn = self._find_by_name(assessment_name)
            return qn.model_copy(deep=True) if qn else None

    def get_questions_for_assessment(self, assessment_name: str) -> List[Question]:
        with self._lock:
            qn = self._find_by_name(assessment_name)
            if not qn:
                return []
            return [q.model_copy(deep=True) for q in qn.questions]

    def get_question_count_for_assessment(self, assessment_name: str) -> int:
        with self._lock:
            qn = self._find_by_name(assessment_name)
            return len(qn.questions) if qn else 0

    def categories_for(self, assessment_name: str) -> List[str]:
        with self._lock:
            qn = self._find_by_name(assessment_name)
            if not qn:
                return []
            return ordered_categories(qn.questions, qn.categories)

    # --- Actions ---

    def add_questionnaire(self, data: Any) -> Questionnaire:
        data = _as_dict(data)
        name = (data.get("name") or "").strip() if isinstance(data.get("name"), str) else ""
        if not name:
            raise ValidationError("Questionnaire validation failed", ["name is required"])
        questions = data.get("questions") or []
        errors = validate_questionnaire_data(questions)
        if errors:
            raise ValidationError("Questionnaire validation failed", errors)

        with self._lock:
            if self._find_by_name(name):
                raise ConflictError(f"A questionnaire named {name!r} already exists")
            new_id = max((qn.id for qn in self._questionnaires), default=0) + 1
            payload = {k: v for k, v in data.items() if k != "id"}
            payload.update({"id": new_id, "name": name, "last_updated": utc_now()})
            payload.setdefault("status", "Active")
            qn = _build(payload)
            _check_category_keys(qn)
            self._stamp_questions(qn)
            self._questionnaires.append(qn)
            logger.info("Added questionnaire id=%s name=%r questions=%d", new_id, name, len(qn.questions))
            return qn.model_copy(deep=True)

    def update_questionnaire(self, data: Any) -> Dict[str, Any]:
        """Replace a questionnaire's metadata and its whole question list."""
        data = _as_dict(data)
        questions = data.get("questions") or []
        errors = validate_questionnaire_data(questions)
        if errors:
            raise ValidationError("Questionnaire validation failed", errors)

        with self._lock:
            try:
                target_id = int(data.get("id"))
            except (TypeError, ValueError):
                target_id = None
            index = next(
                (i for i, qn in enumerate(self._questionnaires) if qn.id == target_id), -1
            )
            if index == -1:
                return {"success": False, "message": "Questionnaire not found"}
            original = self._questionnaires[index]
            new_name = data.get("name") or original.name
            if new_name != original.name and self._find_by_name(new_name):
                raise ConflictError(f"A questionnaire named {new_name!r} already exists")
            payload = original.model_dump()
            payload.update({k: v for k, v in data.items() if v is not None})
            payload.update({"name": new_name, "last_updated": utc_now()})
            payload["id"] = original.id
            qn = _build(payload)
            _check_category_keys(qn)
            self._stamp_questions(qn)
            self._questionnaires[index] = qn
            logger.info("Updated questionnaire id=%s name=%r", qn.id, qn.name)
            return {"success": True, "questionnaire": qn.model_copy(deep=True)}

    # --- Internals ---

    def _find_by_name(self, assessment_name: str) -> Optional[Questionnaire]:
        for qn in self._questionnaires:
            if qn.name == assessment_name:
                return qn
        return None

    @staticmethod
    def _stamp_questions(qn: Questionnaire) -> None:
        for q in qn.questions:
            q.assessment_name = qn.name


def _as_dict(data: Any) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, Mapping):
        return dict(data)
    raise ValidationError("Questionnaire validation failed", ["questionnaire must be an object"])


def _build(payload: Dict[str, Any]) -> Questionnaire:
    try:
        return Questionnaire.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            "Questionnaire validation failed",
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
        ) from e


def _check_category_keys(qn: Questionnaire) -> None:
    errors = key_collisions(ordered_categories(qn.questions, qn.categories))
    if errors:
        raise ValidationError("Questionnaire validation failed", errors)
