"""Input validation shared by the catalog, draft manager and repository.

Validators return a list of human-readable violation messages (empty when
valid) so callers can raise one ``ValidationError`` listing all of them.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, List

from pydantic import BaseModel


def _as_mapping(item: Any) -> Any:
    if isinstance(item, BaseModel):
        return item.model_dump()
    return item


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0 and not isinstance(value, dict)
    return False


def missing_fields(data: Any, required: Iterable[str]) -> List[str]:
    """Names of required fields that are absent, None or blank strings.

    ``0`` and empty dicts count as present: a score of 0 and an empty answer
    set are both legitimate values.
    """
    data = _as_mapping(data)
    if not isinstance(data, Mapping):
        return list(required)
    return [field for field in required if field not in data or _is_blank(data[field])]


def validate_questionnaire_data(questions: Any) -> List[str]:
    """Return list of validation error messages (empty if valid)."""
    errors: List[str] = []
    if not isinstance(questions, (list, tuple)):
        errors.append("Questions must be a list")
        return errors
    if len(questions) == 0:
        errors.append("Questions list cannot be empty")
        return errors

    for index, raw in enumerate(questions, start=1):
        question = _as_mapping(raw)
        if not isinstance(question, Mapping):
            errors.append(f"Question {index} must be an object")
            continue
        for field in ("id", "text", "category"):
            if _is_blank(question.get(field)):
                errors.append(f"Question {index} missing required field: {field}")

        options = question.get("options")
        if not isinstance(options, (list, tuple)) or len(options) == 0:
            errors.append(f"Question {index} missing or invalid options list")
            continue
        for opt_index, raw_opt in enumerate(options, start=1):
            option = _as_mapping(raw_opt)
            if not isinstance(option, Mapping):
                errors.append(f"Question {index}, Option {opt_index} must be an object")
                continue
            if _is_blank(option.get("text")):
                errors.append(f"Question {index}, Option {opt_index} missing required field: text")
            score = option.get("score")
            if score is None or isinstance(score, bool) or score == "":
                errors.append(f"Question {index}, Option {opt_index} missing required field: score")
            else:
                try:
                    int(score)
                except (TypeError, ValueError):
                    errors.append(f"Question {index}, Option {opt_index} score must be an integer")
            if _is_blank(option.get("recommendation")):
                errors.append(
                    f"Question {index}, Option {opt_index} missing required field: recommendation"
                )
    return errors


def validate_report_content(content: Any) -> List[str]:
    """Check the scoring-engine output embedded in a report."""
    content = _as_mapping(content)
    if not isinstance(content, Mapping):
        return ["Report content must be an object"]
    errors: List[str] = []
    overall = content.get("overall")
    if isinstance(overall, bool) or not isinstance(overall, (int, float)):
        errors.append("Report content missing required field: overall")
    if not isinstance(content.get("category_scores"), (Mapping, list, tuple)):
        errors.append("Report content missing required field: category_scores")
    return errors
