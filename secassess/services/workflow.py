"""Assessment session flow: catalog -> active draft -> scoring -> repository."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from secassess.exceptions import StateError, ValidationError
from secassess.schemas.draft import Draft
from secassess.schemas.report import DraftSaveResult, Report
from secassess.services import audit
from secassess.services.catalog import QuestionnaireCatalog
from secassess.services.drafts import DraftLifecycleManager
from secassess.services.reports import ReportRepository
from secassess.services.scoring import ScoringEngine
from secassess.utils.datetime import utc_now

logger = logging.getLogger("secassess.workflow")


class AssessmentWorkflow:
    def __init__(
        self,
        catalog: QuestionnaireCatalog,
        drafts: DraftLifecycleManager,
        reports: ReportRepository,
        engine: Optional[ScoringEngine] = None,
    ):
        self.catalog = catalog
        self.drafts = drafts
        self.reports = reports
        self.engine = engine or ScoringEngine(catalog)

    def start_assessment(self, assessment_type: str) -> Draft:
        questions = self.catalog.get_questions_for_assessment(assessment_type)
        if not questions:
            raise ValidationError("Unknown or empty assessment", [repr(assessment_type)])
        return self.drafts.start(assessment_type, questions)

    def save_progress(self, owner_id: str, name: str, date: Any = None) -> DraftSaveResult:
        """Checkpoint the active draft under ``name`` in the owner's saved drafts."""
        draft = self.drafts.current_draft
        if draft is None:
            raise StateError("No active draft to save.")
        payload = draft.model_dump()
        payload.update({"name": name, "date": date or draft.date or utc_now()})
        result = self.reports.save_or_update_draft(owner_id, payload)
        self.drafts.set_owner(owner_id, name, result.draft.date)
        return result

    def resume_saved_draft(self, owner_id: str, draft_id: str) -> Draft:
        saved = self.reports.get_draft_by_id(owner_id, draft_id)
        if saved is None:
            raise ValidationError("Draft not found", [draft_id])
        self.drafts.resume(saved)
        return self.drafts.current_draft

    def submit(self, owner_id: str, report_name: str, date: Any = None) -> Report:
        """Score the active draft, store the report and retire the draft.

        The saved checkpoint with the same id is deleted, so a finished draft
        is promoted rather than duplicated. If the report cannot be stored the
        active draft is left untouched.
        """
        draft = self.drafts.current_draft
        if draft is None:
            raise StateError("No active draft to submit.")
        result = self.engine.score(draft.assessment_type, draft.answers)
        saved = self.reports.get_draft_by_id(owner_id, draft.id) if owner_id else None
        report = self.reports.add_report(owner_id, {
            "name": report_name,
            "date": date or utc_now(),
            "assessment_type": draft.assessment_type,
            "score": result.overall,
            "report": result,
            "completed_from_draft": draft.id if saved is not None else None,
        })
        deleted = self.reports.delete_report(owner_id, draft.id)
        self.drafts.clear()
        audit.log_draft_promote(owner_id, draft.id, report.id, deleted.success)
        logger.info("Submitted draft %s as report %s (overall=%s)", draft.id, report.id, report.score)
        return report

    def generate_demo_report(
        self,
        owner_id: str,
        assessment_type: str,
        target_scores: Mapping[str, Any],
        name: str,
        date: Any = None,
    ) -> Report:
        """Store a synthetic report whose category scores approximate ``target_scores``."""
        result = self.engine.generate_target_report(assessment_type, target_scores)
        return self.reports.add_report(owner_id, {
            "name": name,
            "date": date or utc_now(),
            "assessment_type": assessment_type,
            "score": result.overall,
            "report": result,
        })
