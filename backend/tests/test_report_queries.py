"""
Tests for the Query/Read Service.

1. Staff queue ordering and status filter
2. Owner's reports
3. Community feed bound
4. Dashboard metrics, including average resolution time
"""
from datetime import timedelta

import pytest

from app.models.db_models import ReportStatus, Priority, IssueType
from app.services.reports import ReportQueryService, ReportLifecycleService, ValidationError

from conftest import NOW


@pytest.fixture
def queries(db):
    return ReportQueryService(db)


class TestStaffQueue:

    def test_ordering(self, queries, make_report):
        low_new = make_report(latitude=1.0, priority=Priority.LOW, created_at=NOW)
        high_old = make_report(latitude=2.0, priority=Priority.HIGH, created_at=NOW - timedelta(days=3))
        high_new = make_report(latitude=3.0, priority=Priority.HIGH, created_at=NOW - timedelta(days=1))
        medium = make_report(latitude=4.0, priority=Priority.MEDIUM, created_at=NOW)
        escalated_low = make_report(
            latitude=5.0, priority=Priority.LOW, created_at=NOW - timedelta(days=9), escalated=True,
        )
        escalated_high = make_report(
            latitude=6.0, priority=Priority.HIGH, created_at=NOW - timedelta(days=10), escalated=True,
        )

        queue = queries.list_queue()

        assert [r.id for r in queue] == [
            escalated_high.id,
            escalated_low.id,
            high_new.id,
            high_old.id,
            medium.id,
            low_new.id,
        ]

    def test_reproducible(self, queries, make_report):
        for i in range(4):
            make_report(latitude=float(i), priority=Priority.MEDIUM, created_at=NOW)

        assert [r.id for r in queries.list_queue()] == [r.id for r in queries.list_queue()]

    def test_status_filter(self, queries, make_report):
        make_report(latitude=1.0, status=ReportStatus.PENDING)
        resolved = make_report(latitude=2.0, status=ReportStatus.RESOLVED)

        assert [r.id for r in queries.list_queue(status=ReportStatus.RESOLVED)] == [resolved.id]
        assert [r.id for r in queries.list_queue(status="Resolved")] == [resolved.id]

    def test_unknown_status_filter(self, queries):
        with pytest.raises(ValidationError):
            queries.list_queue(status="Archived")


class TestOwnedAndFeed:

    def test_owned_newest_first(self, queries, make_report):
        older = make_report(latitude=1.0, user_id="alice", created_at=NOW - timedelta(days=2))
        newer = make_report(latitude=2.0, user_id="alice", created_at=NOW)
        make_report(latitude=3.0, user_id="bob")

        assert [r.id for r in queries.list_owned("alice")] == [newer.id, older.id]
        assert queries.list_owned("carol") == []

    def test_feed_bounded_to_fifty(self, queries, make_report):
        reports = [
            make_report(latitude=i * 0.01, created_at=NOW - timedelta(minutes=i))
            for i in range(55)
        ]

        feed = queries.list_feed()

        assert len(feed) == 50
        assert [r.id for r in feed] == [r.id for r in reports[:50]]

    def test_feed_limit_cannot_exceed_bound(self, queries, make_report):
        for i in range(3):
            make_report(latitude=float(i))

        assert len(queries.list_feed(limit=2)) == 2
        assert len(queries.list_feed(limit=500)) == 3


class TestMetrics:

    def test_empty_store(self, queries):
        metrics = queries.metrics()

        assert metrics.total == 0
        assert metrics.by_status == {"Pending": 0, "In Progress": 0, "Resolved": 0}
        assert metrics.avg_resolution_hours == 0.0
        assert metrics.resolution_sample_size == 0

    def test_counts(self, queries, make_report):
        make_report(latitude=1.0, priority=Priority.HIGH, crowd_verified=True, escalated=True)
        make_report(latitude=2.0, priority=Priority.HIGH)
        make_report(latitude=3.0, status=ReportStatus.IN_PROGRESS, crowd_verified=True)
        make_report(latitude=4.0, status=ReportStatus.RESOLVED)

        metrics = queries.metrics()

        assert metrics.total == 4
        assert metrics.by_status == {"Pending": 2, "In Progress": 1, "Resolved": 1}
        assert metrics.resolved == 1
        assert metrics.high_priority == 2
        assert metrics.crowd_verified == 2
        assert metrics.escalated == 1

    def test_average_resolution_time(self, db, queries):
        lifecycle = ReportLifecycleService(db)

        def resolved_after(hours, latitude):
            report = lifecycle.create_report(
                issue_type=IssueType.POTHOLE,
                description="Pothole",
                image_url="https://img.example/p.jpg",
                latitude=latitude,
                longitude=0.0,
                now=NOW,
            )
            lifecycle.update_status(report.id, ReportStatus.IN_PROGRESS, "staff", now=NOW + timedelta(hours=1))
            lifecycle.update_status(report.id, ReportStatus.RESOLVED, "staff", now=NOW + timedelta(hours=hours))
            return report

        resolved_after(10, 1.0)
        resolved_after(30, 2.0)

        # Reopened: not resolved, excluded
        reopened = resolved_after(5, 3.0)
        lifecycle.update_status(reopened.id, ReportStatus.PENDING, "staff", now=NOW + timedelta(hours=6))

        metrics = queries.metrics()

        assert metrics.resolution_sample_size == 2
        assert metrics.avg_resolution_hours == pytest.approx(20.0)

    def test_uses_last_resolved_entry(self, db, queries):
        lifecycle = ReportLifecycleService(db)
        report = lifecycle.create_report(
            issue_type=IssueType.POTHOLE,
            description="Pothole",
            image_url="https://img.example/p.jpg",
            latitude=1.0,
            longitude=1.0,
            now=NOW,
        )
        lifecycle.update_status(report.id, ReportStatus.RESOLVED, "staff", now=NOW + timedelta(hours=2))
        lifecycle.update_status(report.id, ReportStatus.PENDING, "staff", now=NOW + timedelta(hours=3))
        lifecycle.update_status(report.id, ReportStatus.RESOLVED, "staff", now=NOW + timedelta(hours=8))

        assert queries.metrics().avg_resolution_hours == pytest.approx(8.0)

    def test_single_entry_resolved_reports_excluded(self, queries, make_report):
        """A resolved report with only its creation entry is left out, not averaged as zero."""
        make_report(latitude=1.0, status=ReportStatus.RESOLVED)

        metrics = queries.metrics()

        assert metrics.resolved == 1
        assert metrics.resolution_sample_size == 0
        assert metrics.avg_resolution_hours == 0.0
