"""Explicit application context: every service built once with shared storage."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from secassess.core.logging_config import setup_logging
from secassess.core.settings import settings
from secassess.services.catalog import QuestionnaireCatalog
from secassess.services.drafts import DraftLifecycleManager
from secassess.services.reports import ReportRepository
from secassess.services.scoring import ScoringEngine
from secassess.services.storage import KeyValueStore, MemoryKeyValueStore, SafeStorage, SqlKeyValueStore
from secassess.services.workflow import AssessmentWorkflow


@dataclass
class AppContext:
    storage: SafeStorage
    catalog: QuestionnaireCatalog
    engine: ScoringEngine
    drafts: DraftLifecycleManager
    reports: ReportRepository
    workflow: AssessmentWorkflow


def _default_store() -> KeyValueStore:
    if settings.storage_backend == "memory":
        return MemoryKeyValueStore()
    from secassess.db import SessionLocal, init_db

    init_db()
    return SqlKeyValueStore(SessionLocal)


def build_context(store: Optional[KeyValueStore] = None,
                  catalog: Optional[QuestionnaireCatalog] = None) -> AppContext:
    """Wire the services; defaults follow ``settings.storage_backend``."""
    setup_logging()
    storage = SafeStorage(store if store is not None else _default_store())
    catalog = catalog or QuestionnaireCatalog()
    engine = ScoringEngine(catalog)
    drafts = DraftLifecycleManager(storage)
    reports = ReportRepository(storage, settings.required_assessment_types or catalog.available_assessments())
    workflow = AssessmentWorkflow(catalog, drafts, reports, engine)
    return AppContext(
        storage=storage,
        catalog=catalog,
        engine=engine,
        drafts=drafts,
        reports=reports,
        workflow=workflow,
    )
