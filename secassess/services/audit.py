"""Audit logging helper functions for key domain events.

Standard single-line logs so they are easy to index.
"""
from __future__ import annotations
import logging
from typing import Optional, Any

from secassess.utils.datetime import utc_now

_logger = logging.getLogger("secassess.audit")


def _emit(event: str, user_id: Optional[str] = None, **data: Any):
    payload = {"ts": utc_now().isoformat().replace("+00:00", "Z"), "event": event}
    if user_id:
        payload["user_id"] = user_id
    payload.update(data)
    parts = [f"{k}={repr(v)}" for k, v in payload.items()]
    _logger.info("AUDIT " + " ".join(parts))

# Public convenience wrappers

def log_report_create(user_id: str, report_id: str, assessment_type: str, score: int):
    _emit("report.create", user_id=user_id, report_id=report_id, assessment_type=assessment_type, score=score)

def log_report_delete(user_id: str, record_id: str, collection: str):
    _emit("report.delete", user_id=user_id, record_id=record_id, collection=collection)

def log_draft_save(user_id: str, draft_id: str, name: str, operation: str):
    _emit("draft.save", user_id=user_id, draft_id=draft_id, name=name, operation=operation)

def log_draft_promote(user_id: str, draft_id: str, report_id: str, deleted_saved_draft: bool):
    _emit("draft.promote", user_id=user_id, draft_id=draft_id, report_id=report_id,
          deleted_saved_draft=deleted_saved_draft)
