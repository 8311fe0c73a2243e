from datetime import UTC, datetime, timedelta, timezone

import pytest

from sales_robot.application.config import HistoryConfig
from sales_robot.application.use_cases.query_history import QueryHistoryUseCase
from sales_robot.domain.entities import HistoryRecord
from sales_robot.infrastructure.sqlite_history import SqliteHistoryRepository

NOW = datetime(2025, 2, 10, 15, 0, tzinfo=UTC)


@pytest.fixture
def history(tmp_path):
    h = SqliteHistoryRepository(db_path=str(tmp_path / "test_history.db"))
    yield h
    h.close()


def _record(run_id: str, run_at: datetime, **overrides) -> HistoryRecord:
    data = {
        "id": run_id,
        "run_at": run_at,
        "campaign_selector": "camp-1",
        "operator_id": "admin-1",
        "total_processed": 10,
        "validated": 6,
        "rejected": 3,
        "conflict": 1,
        "kept_pending": 0,
        "revalidated": 1,
        "details": [],
    }
    data.update(overrides)
    return HistoryRecord(**data)


class TestHistoryRepository:
    def test_save_and_search_roundtrip(self, history):
        details = [{"submissionId": "sub-1", "status": "VALIDATED"}]
        history.save(_record("run-1", NOW, details=details))
        [record] = history.search()
        assert record.id == "run-1"
        assert record.run_at == NOW
        assert record.details == details

    def test_most_recent_first(self, history):
        history.save(_record("run-old", NOW - timedelta(days=2)))
        history.save(_record("run-new", NOW))
        assert [r.id for r in history.search()] == ["run-new", "run-old"]

    def test_filters(self, history):
        history.save(_record("run-1", NOW - timedelta(days=5)))
        history.save(_record("run-2", NOW, campaign_selector="camp-2"))
        history.save(_record("run-3", NOW, operator_id="admin-2"))

        assert [r.id for r in history.search(campaign_id="camp-2")] == ["run-2"]
        assert [r.id for r in history.search(operator_id="admin-2")] == ["run-3"]
        recent = history.search(start=NOW - timedelta(days=1))
        assert {r.id for r in recent} == {"run-2", "run-3"}

    def test_offset_timestamps_compare_in_utc(self, history):
        brt = timezone(timedelta(hours=-3))
        history.save(_record("run-1", datetime(2025, 2, 10, 10, 0, tzinfo=brt)))
        assert history.search(start=datetime(2025, 2, 10, 12, 30, tzinfo=UTC)) != []
        assert history.search(start=datetime(2025, 2, 10, 13, 30, tzinfo=UTC)) == []

    def test_limit(self, history):
        for i in range(5):
            history.save(_record(f"run-{i}", NOW - timedelta(hours=i)))
        assert len(history.search(limit=2)) == 2
        assert len(history.search(limit=0)) == 5


class TestQueryHistoryUseCase:
    def test_list_runs_uses_default_limit(self, history):
        for i in range(4):
            history.save(_record(f"run-{i}", NOW - timedelta(hours=i)))
        use_case = QueryHistoryUseCase(history, HistoryConfig(default_limit=3))
        assert len(use_case.list_runs()) == 3
        assert len(use_case.list_runs(limit=10)) == 4

    def test_dashboard_aggregates_window(self, history):
        rejected_detail = {"status": "REJECTED", "technicalMessage": "[C] [TÉCNICO] CNPJ divergente"}
        history.save(
            _record("run-1", NOW - timedelta(days=1), details=[rejected_detail, rejected_detail])
        )
        history.save(
            _record(
                "run-2",
                NOW,
                total_processed=5,
                validated=1,
                rejected=1,
                conflict=0,
                revalidated=0,
                details=[{"status": "REJECTED", "technicalMessage": "[C] [TÉCNICO] Data vazia"}],
            )
        )
        history.save(_record("run-ancient", NOW - timedelta(days=90)))

        stats = QueryHistoryUseCase(history, HistoryConfig(dashboard_days=30)).dashboard_stats(now=NOW)

        assert stats.run_count == 2
        assert stats.totals["total_processed"] == 15
        assert stats.totals["validated"] == 7
        assert str(stats.validation_rate) == "46.67"
        assert stats.top_rejection_reasons[0] == {
            "message": "[C] [TÉCNICO] CNPJ divergente",
            "count": 2,
        }
        assert list(stats.per_day) == ["2025-02-09", "2025-02-10"]
        assert stats.per_day["2025-02-10"] == {"validated": 1, "rejected": 1, "total": 5}

    def test_dashboard_without_runs(self, history):
        stats = QueryHistoryUseCase(history).dashboard_stats(now=NOW)
        assert stats.run_count == 0
        assert stats.to_dict()["validationRate"] == 0.0
