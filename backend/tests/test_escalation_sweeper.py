"""
Tests for the Escalation Sweeper.

1. Pending past threshold → escalated
2. Idempotence
3. Status, priority and history untouched
4. Non-Pending and fresh reports skipped
"""
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.models.db_models import ReportDB, StatusHistoryDB, ReportStatus, Priority
from app.services.reports import EscalationSweeper, ValidationError, StorageError

from conftest import NOW


@pytest.fixture
def sweeper(db):
    return EscalationSweeper(db)


def reload(db, report):
    db.expire_all()
    return db.query(ReportDB).filter(ReportDB.id == report.id).one()


class TestSweepEscalations:

    def test_eight_day_old_pending_escalated(self, db, sweeper, make_report):
        report = make_report(created_at=NOW - timedelta(days=8), priority=Priority.MEDIUM)

        assert sweeper.sweep_escalations(now=NOW, threshold_days=7) == 1

        report = reload(db, report)
        assert report.escalated is True
        assert report.escalated_at == NOW
        assert report.status == ReportStatus.PENDING
        assert report.priority == Priority.MEDIUM

    def test_second_run_escalates_nothing(self, db, sweeper, make_report):
        report = make_report(created_at=NOW - timedelta(days=8))

        assert sweeper.sweep_escalations(now=NOW, threshold_days=7) == 1
        assert sweeper.sweep_escalations(now=NOW + timedelta(minutes=1), threshold_days=7) == 0

        assert reload(db, report).escalated_at == NOW

    def test_exactly_at_threshold(self, db, sweeper, make_report):
        make_report(created_at=NOW - timedelta(days=7))
        assert sweeper.sweep_escalations(now=NOW, threshold_days=7) == 1

    def test_younger_than_threshold_skipped(self, db, sweeper, make_report):
        report = make_report(created_at=NOW - timedelta(days=6, hours=23))

        assert sweeper.sweep_escalations(now=NOW, threshold_days=7) == 0
        assert reload(db, report).escalated is False

    @pytest.mark.parametrize("status", [ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED])
    def test_non_pending_skipped(self, db, sweeper, make_report, status):
        report = make_report(created_at=NOW - timedelta(days=30), status=status)

        assert sweeper.sweep_escalations(now=NOW) == 0
        assert reload(db, report).escalated is False

    def test_no_history_entry(self, db, sweeper, make_report):
        make_report(created_at=NOW - timedelta(days=8))

        sweeper.sweep_escalations(now=NOW)

        assert db.query(StatusHistoryDB).count() == 1

    def test_counts_every_stale_report(self, db, sweeper, make_report):
        for days in (8, 9, 20):
            make_report(latitude=float(days), created_at=NOW - timedelta(days=days))
        make_report(latitude=1.0, created_at=NOW - timedelta(days=1))

        assert sweeper.sweep_escalations(now=NOW) == 3

    def test_zero_threshold_escalates_all_pending(self, db, sweeper, make_report):
        make_report(created_at=NOW)
        assert sweeper.sweep_escalations(now=NOW, threshold_days=0) == 1

    def test_negative_threshold_rejected(self, sweeper):
        with pytest.raises(ValidationError):
            sweeper.sweep_escalations(now=NOW, threshold_days=-1)

    def test_storage_failure(self, db, sweeper, make_report):
        report = make_report(created_at=NOW - timedelta(days=8))

        failure = OperationalError("COMMIT", {}, Exception("connection lost"))
        with patch.object(db, "commit", side_effect=failure):
            with pytest.raises(StorageError):
                sweeper.sweep_escalations(now=NOW)

        assert reload(db, report).escalated is False


class TestFindCandidates:

    def test_lists_without_writing(self, db, sweeper, make_report):
        stale = make_report(created_at=NOW - timedelta(days=10))
        make_report(latitude=2.0, created_at=NOW)

        candidates = sweeper.find_candidates(now=NOW)

        assert [r.id for r in candidates] == [stale.id]
        assert reload(db, stale).escalated is False


def test_run_sweep_reports_run(db, sweeper, make_report):
    make_report(created_at=NOW - timedelta(days=400))

    result = sweeper.run_sweep(threshold_days=7)

    assert result["task"] == "escalation_sweep"
    assert result["threshold_days"] == 7
    assert result["escalated"] == 1
