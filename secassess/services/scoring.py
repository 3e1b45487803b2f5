"""Deterministic scoring of categorized multiple-choice answers.

Contract:
- inputs:
  - questions: the ordered question list of one assessment type
  - answers: mapping of question_id -> selected option, where the option is
    an ``Option``, a mapping with option fields, or an integer index into the
    question's options. Unanswered questions are simply absent.
- output: ``ScoreResult`` with
  - category_scores: category key -> int 0..100
  - overall: int 0..100, the rounded mean of every declared category
  - recommendations: one per sub-optimal answer, highest impact first

Each of the N questions of a category is worth 100/N points. An option score
s (domain -2..+2) earns ``clamp((s + 2) / 4, 0, 1)`` of those points; the
category total is summed and then rounded. A category with no questions scores
0 and still counts towards the overall mean.

All functions here are pure: no storage access, no hidden state.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from secassess.exceptions import ValidationError
from secassess.schemas.questionnaire import Option, Question
from secassess.schemas.report import Recommendation, ScoreResult
from secassess.services.catalog import QuestionnaireCatalog, category_key, key_collisions, ordered_categories

logger = logging.getLogger("secassess.scoring")

MIN_OPTION_SCORE = -2
MAX_OPTION_SCORE = 2
MAX_CATEGORY_SCORE = 100


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (12.5 -> 13, not 12)."""
    return int(math.floor(value + 0.5))


def normalize_option_score(score: float) -> float:
    fraction = (score - MIN_OPTION_SCORE) / (MAX_OPTION_SCORE - MIN_OPTION_SCORE)
    return min(1.0, max(0.0, fraction))


def resolve_answer(question: Question, answer: Any) -> Optional[Option]:
    """Turn an answer-set value into the selected Option (None when unanswered)."""
    if answer is None:
        return None
    if isinstance(answer, Option):
        return answer
    if isinstance(answer, bool):
        raise ValidationError("Invalid answer", [f"Question {question.id}: boolean is not an option"])
    if isinstance(answer, int):
        if 0 <= answer < len(question.options):
            return question.options[answer]
        raise ValidationError(
            "Invalid answer", [f"Question {question.id}: option index {answer} out of range"]
        )
    if isinstance(answer, Mapping):
        try:
            return Option.model_validate(dict(answer))
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid answer", [f"Question {question.id}: {err['msg']}" for err in e.errors()]
            ) from e
    raise ValidationError(
        "Invalid answer", [f"Question {question.id}: unsupported answer type {type(answer).__name__}"]
    )


def _categories(questions: List[Question], declared: Optional[Iterable[str]]) -> List[str]:
    names = ordered_categories(questions, declared)
    errors = key_collisions(names)
    if errors:
        raise ValidationError("Ambiguous category names", errors)
    return names


def _coerce_questions(questions: Iterable[Any]) -> List[Question]:
    out: List[Question] = []
    for q in questions:
        if isinstance(q, Question):
            out.append(q)
            continue
        try:
            out.append(Question.model_validate(q))
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid question", [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            ) from e
    return out


def _score_category(
    category_questions: Sequence[Question],
    answers: Mapping[str, Any],
) -> Tuple[int, List[Recommendation]]:
    count = len(category_questions)
    if count == 0:
        return 0, []

    max_points = MAX_CATEGORY_SCORE / count
    total = 0.0
    recommendations: List[Recommendation] = []
    for q in category_questions:
        option = resolve_answer(q, answers.get(q.id))
        if option is None:
            continue
        question_score = normalize_option_score(option.score) * max_points
        total += question_score
        if option.score < MAX_OPTION_SCORE:
            recommendations.append(Recommendation(
                text=option.recommendation,
                impact_score=round_half_up(max_points - question_score),
                category=q.category,
            ))
    # Sum first, then round once
    return round_half_up(total), recommendations


def score_answers(
    questions: Iterable[Any],
    answers: Optional[Mapping[Any, Any]],
    categories: Optional[Iterable[str]] = None,
) -> ScoreResult:
    """Score an answer set against an assessment's questions."""
    question_list = _coerce_questions(questions)
    answer_map = {str(k): v for k, v in (answers or {}).items()}

    category_scores: Dict[str, int] = {}
    category_labels: Dict[str, str] = {}
    all_recommendations: List[Recommendation] = []
    for name in _categories(question_list, categories):
        key = category_key(name)
        in_category = [q for q in question_list if q.category == name]
        score, recs = _score_category(in_category, answer_map)
        category_scores[key] = score
        category_labels[key] = name
        all_recommendations.extend(recs)

    if category_scores:
        overall = round_half_up(sum(category_scores.values()) / len(category_scores))
    else:
        overall = 0

    # sorted() is stable: equal impacts keep encounter order
    ranked = sorted(all_recommendations, key=lambda r: -r.impact_score)
    return ScoreResult(
        overall=overall,
        category_scores=category_scores,
        category_labels=category_labels,
        recommendations=ranked,
    )


def _target_for(target_scores: Mapping[str, Any], name: str) -> Optional[float]:
    for key in (category_key(name), name):
        if key in target_scores and target_scores[key] is not None:
            try:
                return float(target_scores[key])
            except (TypeError, ValueError):
                return None
    return None


def choose_target_answers(
    questions: Iterable[Any],
    target_scores: Mapping[str, Any],
    categories: Optional[Iterable[str]] = None,
) -> Dict[str, Option]:
    """Pick best or second-best options so each category lands near its target.

    For a category of N questions the cheapest loss is swapping one question's
    best option for its second best, costing (best - second) / 4 * 100/N
    points. The first round(deficit / loss) questions in catalog order get the
    second-best option and the rest get the best. This is an approximation:
    the achieved score is whatever the normal algorithm yields.
    """
    question_list = _coerce_questions(questions)
    chosen: Dict[str, Option] = {}
    for name in _categories(question_list, categories):
        in_category = [q for q in question_list if q.category == name and q.options]
        count = len(in_category)
        if count == 0:
            continue
        target = _target_for(target_scores, name)
        max_points = MAX_CATEGORY_SCORE / count

        questions_to_change = 0
        if target is not None:
            deficit = MAX_CATEGORY_SCORE - target
            ranked_first = in_category[0].options_by_score()
            if len(ranked_first) > 1:
                best, second = ranked_first[0].score, ranked_first[1].score
                smallest_loss = (best - second) / (MAX_OPTION_SCORE - MIN_OPTION_SCORE) * max_points
                if smallest_loss > 0:
                    questions_to_change = round_half_up(deficit / smallest_loss)
        questions_to_change = min(max(questions_to_change, 0), count)

        for index, q in enumerate(in_category):
            ranked = q.options_by_score()
            if index < questions_to_change and len(ranked) > 1:
                chosen[q.id] = ranked[1]
            else:
                chosen[q.id] = ranked[0]
    return chosen


def generate_target_report(
    questions: Iterable[Any],
    target_scores: Mapping[str, Any],
    categories: Optional[Iterable[str]] = None,
) -> ScoreResult:
    """Synthetic report approximating per-category target scores (demo/test data only)."""
    question_list = _coerce_questions(questions)
    category_list = list(categories) if categories is not None else None
    answers = choose_target_answers(question_list, target_scores, category_list)
    return score_answers(question_list, answers, category_list)


class ScoringEngine:
    """Binds the pure scoring functions to a questionnaire catalog."""

    def __init__(self, catalog: QuestionnaireCatalog):
        self.catalog = catalog

    def _questions(self, assessment_type: str) -> Tuple[List[Question], List[str]]:
        questions = self.catalog.get_questions_for_assessment(assessment_type)
        categories = self.catalog.categories_for(assessment_type)
        if not categories:
            raise ValidationError("Unknown assessment type", [repr(assessment_type)])
        return questions, categories

    def score(self, assessment_type: str, answers: Optional[Mapping[Any, Any]]) -> ScoreResult:
        questions, categories = self._questions(assessment_type)
        result = score_answers(questions, answers, categories)
        logger.info(
            "Scored %r: overall=%s categories=%d recommendations=%d",
            assessment_type, result.overall, len(result.category_scores), len(result.recommendations),
        )
        return result

    def generate_target_report(self, assessment_type: str, target_scores: Mapping[str, Any]) -> ScoreResult:
        questions, categories = self._questions(assessment_type)
        return generate_target_report(questions, target_scores, categories)
