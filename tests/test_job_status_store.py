"""
Tests for JobStatusStore.
"""
from datetime import timedelta

from app.models.import_models import CsvJobResult
from app.services.config_service import config_service
from app.services.job_status_store import JobStatusStore


class TestJobStatusStore:
    """Test result snapshots with expiry."""

    def test_put_and_get(self, isolated_db_session):
        store = JobStatusStore(ttl_seconds=3600)

        store.put("csv_1", "completed", {"success": True, "rows": 3}, isolated_db_session, file_name="a.csv")
        snapshot = store.get("csv_1", isolated_db_session)

        assert snapshot["status"] == "completed"
        assert snapshot["file_name"] == "a.csv"
        assert snapshot["results"] == {"success": True, "rows": 3}
        assert snapshot["expires_at"] > snapshot["completed_at"]

    def test_put_replaces_snapshot(self, isolated_db_session):
        store = JobStatusStore(ttl_seconds=3600)

        store.put("csv_1", "failed", {"success": False}, isolated_db_session)
        store.put("csv_1", "completed", {"success": True}, isolated_db_session)

        assert store.get("csv_1", isolated_db_session)["status"] == "completed"
        assert isolated_db_session.query(CsvJobResult).count() == 1

    def test_unknown_job(self, isolated_db_session):
        assert JobStatusStore().get("csv_missing", isolated_db_session) is None

    def test_expired_snapshot_is_gone(self, isolated_db_session):
        store = JobStatusStore(ttl_seconds=60)
        entry = store.put("csv_1", "completed", {}, isolated_db_session)
        entry.expires_at = config_service.utcnow() - timedelta(seconds=1)
        isolated_db_session.commit()

        assert store.get("csv_1", isolated_db_session) is None
        assert isolated_db_session.get(CsvJobResult, "csv_1") is None

    def test_purge_expired(self, isolated_db_session):
        store = JobStatusStore(ttl_seconds=60)
        old = store.put("csv_old", "completed", {}, isolated_db_session)
        store.put("csv_new", "completed", {}, isolated_db_session)
        old.expires_at = config_service.utcnow() - timedelta(hours=1)
        isolated_db_session.commit()

        assert store.purge_expired(isolated_db_session) == 1
        isolated_db_session.expire_all()
        assert store.get("csv_new", isolated_db_session) is not None
        assert isolated_db_session.get(CsvJobResult, "csv_old") is None

    def test_decimal_values_serialised(self, isolated_db_session):
        from decimal import Decimal

        store = JobStatusStore()
        store.put("csv_1", "completed", {"price": Decimal("1.50")}, isolated_db_session)

        assert store.get("csv_1", isolated_db_session)["results"] == {"price": "1.50"}

    def test_expiry_compared_after_reload(self, isolated_db_session):
        store = JobStatusStore(ttl_seconds=3600)
        store.put("csv_1", "completed", {"success": True}, isolated_db_session)
        isolated_db_session.expire_all()

        snapshot = store.get("csv_1", isolated_db_session)

        assert snapshot is not None
        assert snapshot["results"] == {"success": True}
