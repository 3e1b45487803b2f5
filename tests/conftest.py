import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["ENV"] = "test"
os.environ.setdefault("SECASSESS_STORAGE", "memory")

from secassess.db import Base, init_db
from secassess.services.catalog import QuestionnaireCatalog
from secassess.services.drafts import DraftLifecycleManager
from secassess.services.reports import ReportRepository
from secassess.services.scoring import ScoringEngine
from secassess.services.storage import MemoryKeyValueStore, SafeStorage, SqlKeyValueStore
from secassess.services.workflow import AssessmentWorkflow

# Use SQLite in-memory for the SQL-backed store.
# StaticPool keeps one shared connection, otherwise each session would see
# its own empty in-memory database.
TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SCORES = (2, 1, 0, -1, -2)


def make_question(qid, category, text=None):
    return {
        "id": qid,
        "category": category,
        "text": text or f"Question {qid}",
        "explanation": "",
        "options": [
            {"text": f"Option {s}", "score": s, "explanation": "", "recommendation": f"Improve {qid} from {s}"}
            for s in SCORES
        ],
    }


@pytest.fixture
def sql_store():
    # recreate schema for each test to ensure isolation
    Base.metadata.drop_all(bind=engine)
    init_db(bind=engine)
    yield SqlKeyValueStore(TestingSessionLocal)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def memory_store():
    return MemoryKeyValueStore()


@pytest.fixture
def storage(memory_store):
    return SafeStorage(memory_store)


@pytest.fixture
def website_questions():
    """One category, two questions, options scored 2..-2."""
    return [make_question("q1", "Website Strength"), make_question("q2", "Website Strength")]


@pytest.fixture
def catalog():
    return QuestionnaireCatalog()


@pytest.fixture
def drafts(storage):
    return DraftLifecycleManager(storage)


@pytest.fixture
def reports(storage):
    return ReportRepository(storage)


@pytest.fixture
def workflow(catalog, drafts, reports):
    return AssessmentWorkflow(catalog, drafts, reports, ScoringEngine(catalog))


@pytest.fixture
def question_factory():
    return make_question
