import json

import pytest

from secassess.core.questionnaire_data import CLOUD, GDPR, ITIVA
from secassess.exceptions import ConflictError, StateError, ValidationError
from secassess.services.reports import ReportRepository
from secassess.services.storage import COMPLETED_REPORTS_KEY, MemoryKeyValueStore, SafeStorage

ALICE = "user-alice"
BOB = "user-bob"


def _report(name="Report 1", assessment_type=ITIVA, score=70, date="2024-05-01T00:00:00Z"):
    return {
        "name": name,
        "date": date,
        "assessment_type": assessment_type,
        "score": score,
        "report": {"overall": score, "category_scores": {"website_strength": score}, "recommendations": []},
    }


def _draft(question_factory, draft_id="draft-1", name="My draft", date="2024-05-01"):
    return {
        "id": draft_id,
        "name": name,
        "date": date,
        "assessment_type": ITIVA,
        "questions": [question_factory("q1", "Website Strength")],
        "answers": {},
    }


class TestAddReport:
    def test_requires_owner(self, reports):
        with pytest.raises(StateError):
            reports.add_report(None, _report())

    def test_lists_missing_fields(self, reports):
        data = _report()
        del data["date"]
        data["name"] = "  "
        with pytest.raises(ValidationError) as exc:
            reports.add_report(ALICE, data)
        assert exc.value.errors == ["name", "date"]

    def test_zero_score_is_present(self, reports):
        report = reports.add_report(ALICE, _report(score=0))
        assert report.score == 0

    def test_validates_report_content(self, reports):
        data = _report()
        data["report"] = {"overall": "high", "category_scores": None}
        with pytest.raises(ValidationError) as exc:
            reports.add_report(ALICE, data)
        assert exc.value.errors == [
            "Report content missing required field: overall",
            "Report content missing required field: category_scores",
        ]

    def test_accepts_category_scores_as_list(self, reports):
        data = _report()
        data["report"]["category_scores"] = [{"key": "website_strength", "score": 70}]
        report = reports.add_report(ALICE, data)
        assert report.report.category_scores == {"website_strength": 70}

    def test_stamps_id_owner_and_created_at(self, reports):
        report = reports.add_report(ALICE, _report())
        assert report.user_id == ALICE
        assert report.id
        assert report.created_at is not None
        assert report.date.tzinfo is not None

    def test_duplicate_name_for_same_owner(self, reports):
        reports.add_report(ALICE, _report())
        with pytest.raises(ConflictError):
            reports.add_report(ALICE, _report())

    def test_same_name_allowed_for_different_owners(self, reports):
        reports.add_report(ALICE, _report())
        reports.add_report(BOB, _report())
        assert reports.total_reports(ALICE) == 1
        assert reports.total_reports(BOB) == 1


class TestSavedDrafts:
    def test_add_then_idempotent_update(self, reports, question_factory):
        first = reports.save_or_update_draft(ALICE, _draft(question_factory))
        assert first.operation == "added"
        for _ in range(2):
            again = reports.save_or_update_draft(ALICE, _draft(question_factory))
            assert again.operation == "updated"
        assert len(reports.draft_reports(ALICE)) == 1
        assert again.draft.created_at == first.draft.created_at
        assert again.draft.last_modified >= first.draft.last_modified

    def test_name_conflicts(self, reports, question_factory):
        reports.save_or_update_draft(ALICE, _draft(question_factory, "draft-1", "One"))
        reports.save_or_update_draft(ALICE, _draft(question_factory, "draft-2", "Two"))
        with pytest.raises(ConflictError):
            reports.save_or_update_draft(ALICE, _draft(question_factory, "draft-3", "One"))
        with pytest.raises(ConflictError):
            reports.save_or_update_draft(ALICE, _draft(question_factory, "draft-2", "One"))

    def test_requires_fields(self, reports, question_factory):
        data = _draft(question_factory)
        data["questions"] = []
        with pytest.raises(ValidationError) as exc:
            reports.save_or_update_draft(ALICE, data)
        assert exc.value.errors == ["questions"]

    def test_foreign_draft_id_is_rejected(self, reports, question_factory):
        reports.save_or_update_draft(ALICE, _draft(question_factory))
        with pytest.raises(ConflictError):
            reports.save_or_update_draft(BOB, _draft(question_factory))

    def test_latest_draft_by_type(self, reports, question_factory):
        reports.save_or_update_draft(ALICE, _draft(question_factory, "draft-1", "One"))
        reports.save_or_update_draft(ALICE, _draft(question_factory, "draft-2", "Two"))
        reports.save_or_update_draft(ALICE, _draft(question_factory, "draft-1", "One"))
        assert reports.get_latest_draft_by_type(ALICE, ITIVA).id == "draft-1"
        assert reports.get_latest_draft_by_type(ALICE, CLOUD) is None

    def test_get_draft_by_id(self, reports, question_factory):
        reports.save_or_update_draft(ALICE, _draft(question_factory))
        assert reports.get_draft_by_id(ALICE, "draft-1").name == "My draft"
        assert reports.get_draft_by_id(BOB, "draft-1") is None
        with pytest.raises(ValidationError):
            reports.get_draft_by_id(ALICE, "")

    def test_complete_draft_report(self, reports, question_factory):
        reports.save_or_update_draft(ALICE, _draft(question_factory))
        report = reports.complete_draft_report(ALICE, "draft-1", _report())
        assert report.completed_from_draft == "draft-1"
        assert reports.has_drafts(ALICE) is False
        assert len(reports.completed_reports(ALICE)) == 1


class TestDeleteAndLookup:
    def test_delete_completed_then_missing(self, reports):
        report = reports.add_report(ALICE, _report())
        result = reports.delete_report(ALICE, report.id)
        assert result.success is True
        assert result.collection == "completed"

        missing = reports.delete_report(ALICE, report.id)
        assert missing.success is False
        assert missing.message == "Report not found"

    def test_delete_draft(self, reports, question_factory):
        reports.save_or_update_draft(ALICE, _draft(question_factory))
        assert reports.delete_report(ALICE, "draft-1").collection == "draft"

    def test_cannot_delete_other_owners_report(self, reports):
        report = reports.add_report(ALICE, _report())
        assert reports.delete_report(BOB, report.id).success is False
        assert reports.total_reports(ALICE) == 1

    def test_get_report_by_id_is_owner_scoped(self, reports, question_factory):
        report = reports.add_report(ALICE, _report())
        reports.save_or_update_draft(ALICE, _draft(question_factory))

        entry = reports.get_report_by_id(ALICE, report.id)
        assert entry.is_draft is False
        assert entry.record.name == "Report 1"
        assert reports.get_report_by_id(ALICE, "draft-1").is_draft is True
        assert reports.get_report_by_id(BOB, report.id) is None
        assert reports.get_report_by_id(ALICE, "") is None

    def test_returned_records_are_copies(self, reports):
        report = reports.add_report(ALICE, _report())
        report.name = "changed"
        assert reports.completed_reports(ALICE)[0].name == "Report 1"

    def test_reports_by_type(self, reports):
        reports.add_report(ALICE, _report("A", ITIVA))
        reports.add_report(ALICE, _report("B", CLOUD))
        assert [r.name for r in reports.get_reports_by_type(ALICE, CLOUD)] == ["B"]
        with pytest.raises(ValidationError):
            reports.get_reports_by_type(ALICE, "")

    def test_reports_by_date_range_is_inclusive(self, reports):
        reports.add_report(ALICE, _report("Jan", date="2024-01-10T00:00:00Z"))
        reports.add_report(ALICE, _report("Feb", date="2024-02-10T00:00:00Z"))
        reports.add_report(ALICE, _report("Mar", date="2024-03-10T00:00:00Z"))
        found = reports.get_reports_by_date_range(ALICE, "2024-02-10", "2024-03-10T00:00:00Z")
        assert [r.name for r in found] == ["Feb", "Mar"]

    def test_reports_by_date_range_rejects_bad_input(self, reports):
        with pytest.raises(ValidationError):
            reports.get_reports_by_date_range(ALICE, "2024-03-01", "2024-01-01")
        with pytest.raises(ValidationError):
            reports.get_reports_by_date_range(ALICE, "garbage", "2024-01-01")
        with pytest.raises(ValidationError):
            reports.get_reports_by_date_range(ALICE, None, "2024-01-01")

    def test_user_reports_newest_first(self, reports, question_factory):
        reports.add_report(ALICE, _report("Old", date="2024-01-01T00:00:00Z"))
        reports.save_or_update_draft(ALICE, _draft(question_factory, date="2024-06-01"))
        reports.add_report(ALICE, _report("Mid", date="2024-03-01T00:00:00Z"))
        entries = reports.user_reports(ALICE)
        assert [(e.name, e.is_draft) for e in entries] == [("My draft", True), ("Mid", False), ("Old", False)]
        assert reports.user_reports(None) == []


class TestAggregates:
    def test_average_score_uses_latest_per_type(self, reports):
        assert reports.average_score(ALICE) == "N/A"
        reports.add_report(ALICE, _report("Old", ITIVA, 60, "2024-01-01T00:00:00Z"))
        reports.add_report(ALICE, _report("New", ITIVA, 80, "2024-02-01T00:00:00Z"))
        reports.add_report(ALICE, _report("Cloud", CLOUD, 70, "2024-01-15T00:00:00Z"))
        assert reports.average_score(ALICE) == "75.0"

    def test_calculate_user_average_requires_every_type(self, reports):
        reports.add_report(ALICE, _report("Old", ITIVA, 60, "2024-01-01T00:00:00Z"))
        reports.add_report(ALICE, _report("New", ITIVA, 80, "2024-02-01T00:00:00Z"))
        reports.add_report(ALICE, _report("Cloud", CLOUD, 71, "2024-01-15T00:00:00Z"))

        summary = reports.calculate_user_average_score_and_reports(ALICE, [ITIVA, CLOUD])
        assert summary.average_score == 75.5
        assert [r.name for r in summary.latest_reports] == ["New", "Cloud"]

        assert reports.calculate_user_average_score_and_reports(ALICE, [ITIVA, CLOUD, GDPR]) is None
        assert reports.calculate_user_average_score_and_reports(ALICE, []) is None
        assert reports.calculate_user_average_score_and_reports(BOB, [ITIVA]) is None

    def test_has_drafts(self, reports, question_factory):
        assert reports.has_drafts(ALICE) is False
        reports.save_or_update_draft(ALICE, _draft(question_factory))
        assert reports.has_drafts(ALICE) is True
        assert reports.has_drafts(BOB) is False

    def test_clear_all_reports(self, reports, question_factory):
        reports.add_report(ALICE, _report())
        reports.save_or_update_draft(BOB, _draft(question_factory))
        reports.clear_all_reports()
        assert reports.total_reports(ALICE) == 0
        assert reports.total_reports(BOB) == 0


class TestPersistence:
    def test_collections_survive_reload(self, storage, question_factory):
        repo = ReportRepository(storage)
        report = repo.add_report(ALICE, _report())
        repo.save_or_update_draft(ALICE, _draft(question_factory))

        reloaded = ReportRepository(storage)
        assert reloaded.get_report_by_id(ALICE, report.id).record == report
        assert reloaded.get_draft_by_id(ALICE, "draft-1") is not None

    def test_corrupt_entries_are_skipped(self, question_factory):
        good = ReportRepository(SafeStorage(MemoryKeyValueStore()))
        stored = good.add_report(ALICE, _report()).model_dump(mode="json")
        store = MemoryKeyValueStore({COMPLETED_REPORTS_KEY: json.dumps([{"name": "broken"}, stored])})
        repo = ReportRepository(SafeStorage(store))
        assert [r.name for r in repo.completed_reports(ALICE)] == ["Report 1"]

    def test_unparseable_collections_load_empty(self):
        store = MemoryKeyValueStore({COMPLETED_REPORTS_KEY: "not json", "reports-drafts": '{"a": 1}'})
        repo = ReportRepository(SafeStorage(store))
        assert repo.total_reports(ALICE) == 0

    def test_sql_backed_repository(self, sql_store):
        repo = ReportRepository(SafeStorage(sql_store))
        report = repo.add_report(ALICE, _report())
        reloaded = ReportRepository(SafeStorage(sql_store))
        assert reloaded.get_report_by_id(ALICE, report.id).record.name == "Report 1"


def test_configured_required_types_are_the_default(storage):
    repo = ReportRepository(storage, required_assessment_types=[ITIVA, CLOUD])
    repo.add_report(ALICE, _report("A", ITIVA, 80))
    assert repo.calculate_user_average_score_and_reports(ALICE) is None

    repo.add_report(ALICE, _report("B", CLOUD, 70))
    assert repo.calculate_user_average_score_and_reports(ALICE).average_score == 75.0
    # An explicit list still wins over the configured one
    assert repo.calculate_user_average_score_and_reports(ALICE, [CLOUD]).average_score == 70.0
