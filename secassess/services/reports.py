"""Completed reports and saved drafts for every user.

Both collections are held in memory for all owners and persisted whole under
``reports-completed`` / ``reports-drafts``. Every public method takes the
owner id explicitly; lookups never cross owners.
"""
from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError

from secassess.exceptions import ConflictError, StateError, ValidationError
from secassess.schemas.draft import Draft
from secassess.schemas.report import (
    AverageScoreSummary,
    DeleteResult,
    DraftSaveResult,
    RecordEntry,
    Report,
)
from secassess.services import audit
from secassess.services.storage import COMPLETED_REPORTS_KEY, SAVED_DRAFTS_KEY, SafeStorage
from secassess.services.validation import missing_fields, validate_report_content
from secassess.utils.datetime import parse_datetime, utc_now

logger = logging.getLogger("secassess.reports")

REPORT_REQUIRED_FIELDS = ("name", "date", "assessment_type", "score", "report")
DRAFT_REQUIRED_FIELDS = ("id", "name", "date", "assessment_type", "questions", "answers")


def _pydantic_errors(e: PydanticValidationError) -> List[str]:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]


def _as_dict(data: Any) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, Mapping):
        return dict(data)
    raise ValidationError("Invalid record", ["record must be an object"])


def _sort_key(value: Optional[datetime]) -> float:
    return value.timestamp() if value else float("-inf")


def _require_owner(owner_id: Optional[str], action: str) -> str:
    if not owner_id:
        raise StateError(f"User must be logged in to {action}.")
    return owner_id


class ReportRepository:
    def __init__(self, storage: SafeStorage, required_assessment_types: Optional[Iterable[str]] = None):
        self.storage = storage
        # Types a user must have completed before an overall average is reported
        self.required_assessment_types: List[str] = list(required_assessment_types or [])
        self._lock = threading.RLock()
        self._completed: List[Report] = []
        self._drafts: List[Draft] = []
        self.reload()

    # --- Loading / persistence ---

    def reload(self) -> None:
        with self._lock:
            self._completed = self._load(COMPLETED_REPORTS_KEY, Report)
            self._drafts = self._load(SAVED_DRAFTS_KEY, Draft)

    def _load(self, key: str, model):
        raw = self.storage.get(key, [])
        if not isinstance(raw, list):
            logger.warning("Ignoring non-list value stored under %s", key)
            return []
        records = []
        for item in raw:
            try:
                records.append(model.model_validate(item))
            except PydanticValidationError as e:
                logger.warning("Skipping corrupt entry under %s: %s", key, e)
        return records

    def _persist(self) -> None:
        self.storage.set(COMPLETED_REPORTS_KEY, [r.model_dump(mode="json") for r in self._completed])
        self.storage.set(SAVED_DRAFTS_KEY, [d.model_dump(mode="json") for d in self._drafts])

    # --- Owner views ---

    def completed_reports(self, owner_id: Optional[str]) -> List[Report]:
        if not owner_id:
            return []
        with self._lock:
            return [r.model_copy(deep=True) for r in self._completed if r.user_id == owner_id]

    def draft_reports(self, owner_id: Optional[str]) -> List[Draft]:
        if not owner_id:
            return []
        with self._lock:
            return [d.model_copy(deep=True) for d in self._drafts if d.user_id == owner_id]

    def user_reports(self, owner_id: Optional[str]) -> List[RecordEntry]:
        """Completed reports and drafts of the owner, newest first by date."""
        entries = [RecordEntry(is_draft=False, record=r) for r in self.completed_reports(owner_id)]
        entries += [RecordEntry(is_draft=True, record=d) for d in self.draft_reports(owner_id)]
        return sorted(entries, key=lambda e: _sort_key(e.date), reverse=True)

    def has_drafts(self, owner_id: Optional[str]) -> bool:
        return len(self.draft_reports(owner_id)) > 0

    def total_reports(self, owner_id: Optional[str]) -> int:
        return len(self.completed_reports(owner_id)) + len(self.draft_reports(owner_id))

    def average_score(self, owner_id: Optional[str]) -> str:
        """Mean of the latest score per assessment type, e.g. ``"72.5"``, or ``"N/A"``."""
        latest = self._latest_by_type(self.completed_reports(owner_id))
        if not latest:
            return "N/A"
        avg = sum(r.score for r in latest.values()) / len(latest)
        return f"{avg:.1f}"

    # --- Actions ---

    def add_report(self, owner_id: Optional[str], report_data: Any) -> Report:
        owner_id = _require_owner(owner_id, "add a report")
        data = _as_dict(report_data)
        missing = missing_fields(data, REPORT_REQUIRED_FIELDS)
        if missing:
            raise ValidationError("Missing required fields", missing)
        errors = validate_report_content(data["report"])
        if errors:
            raise ValidationError("Report validation failed", errors)

        with self._lock:
            # Unique per owner; two users may reuse a name
            if any(r.name == data["name"] for r in self._completed if r.user_id == owner_id):
                raise ConflictError("A report with this name already exists")
            payload = {**data, "id": str(uuid.uuid4()), "user_id": owner_id, "created_at": utc_now()}
            payload["date"] = self._coerce_date(data["date"])
            try:
                report = Report.model_validate(payload)
            except PydanticValidationError as e:
                raise ValidationError("Report validation failed", _pydantic_errors(e)) from e
            self._completed.append(report)
            self._persist()
            audit.log_report_create(owner_id, report.id, report.assessment_type, report.score)
            return report.model_copy(deep=True)

    def save_or_update_draft(self, owner_id: Optional[str], draft_data: Any) -> DraftSaveResult:
        """Add a new saved draft or update the owner's draft with the same id."""
        owner_id = _require_owner(owner_id, "save a draft")
        data = _as_dict(draft_data)
        missing = missing_fields(data, DRAFT_REQUIRED_FIELDS)
        if missing:
            raise ValidationError("Missing required fields", missing)
        data["date"] = self._coerce_date(data["date"])

        with self._lock:
            owned = [d for d in self._drafts if d.user_id == owner_id]
            index = next((i for i, d in enumerate(self._drafts) if d.id == data["id"]), -1)
            now = utc_now()

            if index != -1 and self._drafts[index].user_id != owner_id:
                raise ConflictError("Draft id already belongs to another user")

            if index != -1:
                if any(d.name == data["name"] and d.id != data["id"] for d in owned):
                    raise ConflictError("Another draft with this name already exists.")
                merged = {**self._drafts[index].model_dump(), **data, "user_id": owner_id, "last_modified": now}
                draft = self._build_draft(merged)
                self._drafts[index] = draft
                operation = "updated"
            else:
                if any(d.name == data["name"] for d in owned):
                    raise ConflictError("A draft with this name already exists.")
                draft = self._build_draft({
                    **data,
                    "id": data.get("id") or f"draft-{uuid.uuid4().hex}",
                    "user_id": owner_id,
                    "created_at": now,
                    "last_modified": now,
                })
                self._drafts.append(draft)
                operation = "added"

            self._persist()
            audit.log_draft_save(owner_id, draft.id, draft.name, operation)
            return DraftSaveResult(success=True, operation=operation, draft=draft.model_copy(deep=True))

    def complete_draft_report(self, owner_id: Optional[str], draft_id: str, report_data: Any) -> Report:
        """Turn one of the owner's saved drafts into a completed report."""
        owner_id = _require_owner(owner_id, "complete a draft")
        if not draft_id:
            raise ValidationError("Draft ID is required")
        with self._lock:
            if self.get_draft_by_id(owner_id, draft_id) is None:
                raise ValidationError("Draft not found", [draft_id])
            report = self.add_report(owner_id, {**_as_dict(report_data), "completed_from_draft": draft_id})
            result = self.delete_report(owner_id, draft_id)
            audit.log_draft_promote(owner_id, draft_id, report.id, result.success)
            return report

    def delete_report(self, owner_id: Optional[str], record_id: str) -> DeleteResult:
        """Delete a completed report or saved draft; a miss is a normal outcome."""
        owner_id = _require_owner(owner_id, "delete a report")
        with self._lock:
            for collection, records in (("completed", self._completed), ("draft", self._drafts)):
                index = next(
                    (i for i, r in enumerate(records) if r.id == record_id and r.user_id == owner_id), -1
                )
                if index != -1:
                    records.pop(index)
                    self._persist()
                    audit.log_report_delete(owner_id, record_id, collection)
                    return DeleteResult(success=True, collection=collection)
        logger.warning(
            "Attempted to delete report/draft %r but it was not found; normal for never-saved assessments",
            record_id,
        )
        return DeleteResult(success=False, message="Report not found")

    def clear_all_reports(self) -> None:
        with self._lock:
            self._completed = []
            self._drafts = []
            self._persist()
            logger.info("Cleared all reports and saved drafts")

    # --- Lookups ---

    def get_report_by_id(self, owner_id: Optional[str], record_id: str) -> Optional[RecordEntry]:
        if not record_id:
            logger.error("get_report_by_id called without a report id")
            return None
        with self._lock:
            for report in self._completed:
                if report.id == record_id and report.user_id == owner_id:
                    return RecordEntry(is_draft=False, record=report.model_copy(deep=True))
            for draft in self._drafts:
                if draft.id == record_id and draft.user_id == owner_id:
                    return RecordEntry(is_draft=True, record=draft.model_copy(deep=True))
        return None

    def get_draft_by_id(self, owner_id: Optional[str], draft_id: str) -> Optional[Draft]:
        if not draft_id:
            raise ValidationError("Draft ID is required")
        return next((d for d in self.draft_reports(owner_id) if d.id == draft_id), None)

    def get_latest_draft_by_type(self, owner_id: Optional[str], assessment_type: str) -> Optional[Draft]:
        if not assessment_type:
            raise ValidationError("Type is required")
        drafts = [d for d in self.draft_reports(owner_id) if d.assessment_type == assessment_type]
        if not drafts:
            return None
        return max(drafts, key=lambda d: _sort_key(d.last_modified))

    def get_reports_by_type(self, owner_id: Optional[str], assessment_type: str) -> List[Report]:
        if not assessment_type:
            raise ValidationError("Type is required")
        return [r for r in self.completed_reports(owner_id) if r.assessment_type == assessment_type]

    def get_reports_by_date_range(self, owner_id: Optional[str], start_date: Any, end_date: Any) -> List[Report]:
        """Completed reports dated within [start_date, end_date]."""
        if start_date in (None, "") or end_date in (None, ""):
            raise ValidationError("Start date and end date are required")
        start, end = parse_datetime(start_date), parse_datetime(end_date)
        if start is None or end is None:
            raise ValidationError("Invalid date format")
        if start > end:
            raise ValidationError("Start date must not be after end date")
        return [r for r in self.completed_reports(owner_id) if start <= parse_datetime(r.date) <= end]

    def calculate_user_average_score_and_reports(
        self, user_id: Optional[str], required_types: Optional[Iterable[str]] = None
    ) -> Optional[AverageScoreSummary]:
        """Average of the latest report per required type, once every type is completed.

        ``required_types`` defaults to the repository's configured types.
        """
        types = list(self.required_assessment_types if required_types is None else required_types)
        if not types:
            return None
        latest = self._latest_by_type(self.completed_reports(user_id))
        if not all(t in latest for t in types):
            return None
        latest_reports = [latest[t] for t in types]
        average = sum(r.score for r in latest_reports) / len(latest_reports)
        return AverageScoreSummary(average_score=average, latest_reports=latest_reports)

    # --- Internals ---

    @staticmethod
    def _latest_by_type(reports: List[Report]) -> Dict[str, Report]:
        latest: Dict[str, Report] = {}
        for report in reports:
            current = latest.get(report.assessment_type)
            # Ties keep the first stored report
            if current is None or _sort_key(parse_datetime(report.date)) > _sort_key(parse_datetime(current.date)):
                latest[report.assessment_type] = report
        return latest

    @staticmethod
    def _coerce_date(value: Any) -> datetime:
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValidationError("Invalid date format", [repr(value)])
        return parsed

    @staticmethod
    def _build_draft(payload: Dict[str, Any]) -> Draft:
        try:
            return Draft.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError("Draft validation failed", _pydantic_errors(e)) from e
