"""Tests for progress records and the progress tracker."""

from datetime import datetime, timedelta, timezone

import pytest

from scrape_monitor.models.progress import ScrapingProgress
from scrape_monitor.models.status import ScrapingStatus, StatusClass, UnknownStatus
from scrape_monitor.models.wire import AggregatedRefreshStatus, ProgressUpdate
from scrape_monitor.services.progress_tracker import ProgressTracker


ACCOUNT = "1234567890"


class TestScrapingProgress:
    """Invariants of a single account record."""

    def test_empty_record(self):
        progress = ScrapingProgress(account_number=ACCOUNT, account_name="Checking")

        assert progress.status is None
        assert progress.status_class is StatusClass.LOADING
        assert progress.history == ()
        assert progress.last_update_time is None
        assert progress.masked_account_number == "7890"

    def test_record_appends_and_sets_status(self, minutes_ago):
        progress = ScrapingProgress(account_number=ACCOUNT, account_name="Checking")

        progress.record("PENDING", timestamp=minutes_ago(3))
        progress.record(ScrapingStatus.LOGIN_STARTED, timestamp=minutes_ago(2))

        assert [e.status for e in progress.history] == [
            ScrapingStatus.PENDING,
            ScrapingStatus.LOGIN_STARTED,
        ]
        assert progress.status is ScrapingStatus.LOGIN_STARTED
        assert progress.last_update_time == minutes_ago(2)

    def test_history_is_read_only_view(self, minutes_ago):
        progress = ScrapingProgress(account_number=ACCOUNT, account_name="Checking")
        progress.record("PENDING", timestamp=minutes_ago(1))

        history = progress.history
        assert isinstance(history, tuple)
        progress.record("LOGIN_STARTED", timestamp=minutes_ago(0))
        assert len(history) == 1
        assert len(progress.history) == 2

    def test_last_update_time_is_monotonic(self, minutes_ago):
        """An out-of-order event never moves last_update_time backwards."""
        progress = ScrapingProgress(account_number=ACCOUNT, account_name="Checking")

        progress.record("LOGIN_STARTED", timestamp=minutes_ago(1))
        progress.record("PENDING", timestamp=minutes_ago(5))

        assert progress.last_update_time == minutes_ago(1)
        assert progress.status is ScrapingStatus.PENDING

    def test_naive_timestamps_are_utc(self):
        progress = ScrapingProgress(account_number=ACCOUNT, account_name="Checking")
        event = progress.record("PENDING", timestamp=datetime(2023, 3, 15, 13, 0))

        assert event.timestamp.tzinfo is timezone.utc

    def test_error_message_only_while_in_error(self, minutes_ago):
        progress = ScrapingProgress(account_number=ACCOUNT, account_name="Checking")

        progress.record("LOGIN_STARTED", timestamp=minutes_ago(2), message="opening portal")
        assert progress.error_message is None

        progress.record("LOGIN_FAILED", timestamp=minutes_ago(1), message="Bad credentials")
        assert progress.status_class is StatusClass.ERROR
        assert progress.error_message == "Bad credentials"

        progress.attach_error("Bad credentials (code 401)")
        assert progress.error_message == "Bad credentials (code 401)"

    def test_attach_error_ignored_outside_error(self, minutes_ago):
        progress = ScrapingProgress(account_number=ACCOUNT, account_name="Checking")
        progress.record("COMPLETED", timestamp=minutes_ago(1))

        progress.attach_error("stale failure")

        assert progress.error_message is None

    def test_unknown_status_is_kept(self, minutes_ago):
        progress = ScrapingProgress(account_number=ACCOUNT, account_name="Checking")
        progress.record("MFA_REQUIRED", timestamp=minutes_ago(1))

        assert progress.status == UnknownStatus("MFA_REQUIRED")
        assert progress.status_class is StatusClass.LOADING
        assert progress.to_dict()["status"] == "MFA_REQUIRED"

    def test_to_dict(self, minutes_ago):
        progress = ScrapingProgress(account_number=ACCOUNT, account_name="Checking")
        progress.record("SCRAPING_FAILED", timestamp=minutes_ago(1), message="Timeout")

        data = progress.to_dict()

        assert data["status"] == "SCRAPING_FAILED"
        assert data["status_class"] == "error"
        assert data["error_message"] == "Timeout"
        assert data["history"][0]["message"] == "Timeout"


class TestTrackerUpdates:
    """Pushed progress updates."""

    def test_apply_update_creates_record(self, now):
        tracker = ProgressTracker()

        record = tracker.apply_update(ProgressUpdate(
            account_number=ACCOUNT,
            account_name="Checking",
            status="PENDING",
            timestamp=now
        ))

        assert tracker.get(ACCOUNT) is record
        assert record.status is ScrapingStatus.PENDING
        assert record.account_name == "Checking"

    def test_records_keep_first_seen_order(self, now):
        tracker = ProgressTracker()
        for number in ["222", "111", "222", "333"]:
            tracker.apply_update(ProgressUpdate(account_number=number, status="PENDING", timestamp=now))

        assert [r.account_number for r in tracker.records()] == ["222", "111", "333"]
        assert len(tracker.get("222").history) == 2

    def test_update_accepts_camel_case(self):
        update = ProgressUpdate.model_validate({
            "accountNumber": ACCOUNT,
            "accountName": "Checking",
            "status": "LOGIN_STARTED",
        })
        assert update.account_number == ACCOUNT

    def test_start_run_drops_records(self, now):
        tracker = ProgressTracker()
        tracker.apply_update(ProgressUpdate(account_number=ACCOUNT, status="COMPLETED", timestamp=now))

        tracker.start_run()

        assert tracker.records() == []
        assert tracker.refresh_in_progress is True
        assert tracker.run_number == 1

    def test_failures_and_terminal(self, now):
        tracker = ProgressTracker()
        tracker.apply_update(ProgressUpdate(account_number="1", status="COMPLETED", timestamp=now))
        tracker.apply_update(ProgressUpdate(account_number="2", status="LOGIN_STARTED", timestamp=now))

        assert not tracker.has_failures()
        assert not tracker.all_terminal()

        tracker.apply_update(ProgressUpdate(account_number="2", status="LOGIN_FAILED", timestamp=now))

        assert tracker.has_failures()
        assert tracker.all_terminal()


def _snapshot(in_progress: bool, history, **detail) -> AggregatedRefreshStatus:
    return AggregatedRefreshStatus.model_validate({
        "progressMap": {
            ACCOUNT: {
                "accountNumber": ACCOUNT,
                "accountName": "Checking",
                "history": history,
                **detail,
            }
        },
        "refreshInProgress": in_progress,
    })


def _entry(status: str, at: datetime, message=None) -> dict:
    return {"status": status, "timestamp": at.isoformat(), "message": message}


class TestTrackerSnapshots:
    """Merging polled aggregate status into the records."""

    def test_snapshot_creates_records(self, minutes_ago):
        tracker = ProgressTracker()

        tracker.apply_snapshot(_snapshot(True, [
            _entry("PENDING", minutes_ago(3)),
            _entry("LOGIN_STARTED", minutes_ago(2)),
        ], status="LOGIN_STARTED"))

        record = tracker.get(ACCOUNT)
        assert record.status is ScrapingStatus.LOGIN_STARTED
        assert len(record.history) == 2
        assert tracker.refresh_in_progress is True

    def test_extended_history_appends_tail(self, minutes_ago):
        tracker = ProgressTracker()
        first = [_entry("PENDING", minutes_ago(3))]
        tracker.apply_snapshot(_snapshot(True, first))
        record = tracker.get(ACCOUNT)
        original_event = record.history[0]

        tracker.apply_snapshot(_snapshot(False, first + [_entry("COMPLETED", minutes_ago(1))]))

        assert tracker.get(ACCOUNT) is record
        assert record.history[0] is original_event
        assert [e.status for e in record.history] == [ScrapingStatus.PENDING, ScrapingStatus.COMPLETED]
        assert tracker.refresh_in_progress is False

    def test_repeated_snapshot_is_idempotent(self, minutes_ago):
        tracker = ProgressTracker()
        history = [_entry("PENDING", minutes_ago(3)), _entry("LOGIN_STARTED", minutes_ago(2))]

        tracker.apply_snapshot(_snapshot(True, history))
        tracker.apply_snapshot(_snapshot(True, history))

        assert len(tracker.get(ACCOUNT).history) == 2

    def test_stale_snapshot_is_ignored(self, minutes_ago):
        tracker = ProgressTracker()
        history = [_entry("PENDING", minutes_ago(3)), _entry("LOGIN_STARTED", minutes_ago(2))]
        tracker.apply_snapshot(_snapshot(True, history))

        tracker.apply_snapshot(_snapshot(True, history[:1]))

        record = tracker.get(ACCOUNT)
        assert len(record.history) == 2
        assert record.status is ScrapingStatus.LOGIN_STARTED

    def test_diverged_history_replaces_record(self, minutes_ago):
        tracker = ProgressTracker()
        tracker.apply_snapshot(_snapshot(False, [
            _entry("PENDING", minutes_ago(60)),
            _entry("COMPLETED", minutes_ago(55)),
        ]))
        old = tracker.get(ACCOUNT)

        tracker.apply_snapshot(_snapshot(True, [_entry("PENDING", minutes_ago(1))]))

        new = tracker.get(ACCOUNT)
        assert new is not old
        assert [e.status for e in new.history] == [ScrapingStatus.PENDING]
        assert new.last_update_time == minutes_ago(1)

    def test_status_only_detail(self, minutes_ago):
        tracker = ProgressTracker()
        snapshot = _snapshot(
            True,
            None,
            status="SCRAPING_FAILED",
            lastUpdateTime=minutes_ago(1).isoformat(),
            errorMessage="Timeout"
        )

        tracker.apply_snapshot(snapshot)
        tracker.apply_snapshot(snapshot)

        record = tracker.get(ACCOUNT)
        assert len(record.history) == 1
        assert record.error_message == "Timeout"
        assert tracker.has_failures()

    def test_error_message_attached_from_detail(self, minutes_ago):
        tracker = ProgressTracker()

        tracker.apply_snapshot(_snapshot(
            False,
            [_entry("LOGIN_FAILED", minutes_ago(1))],
            status="LOGIN_FAILED",
            errorMessage="Invalid password"
        ))

        assert tracker.get(ACCOUNT).error_message == "Invalid password"

    def test_missing_account_number_uses_key(self, now):
        tracker = ProgressTracker()
        snapshot = AggregatedRefreshStatus.model_validate({
            "progressMap": {"555": {"accountNumber": "", "status": "PENDING"}},
            "refreshInProgress": True,
        })

        tracker.apply_snapshot(snapshot)

        assert tracker.get("555") is not None

    def test_null_map(self):
        snapshot = AggregatedRefreshStatus.model_validate({"progressMap": None, "refreshInProgress": False})

        tracker = ProgressTracker()
        assert tracker.apply_snapshot(snapshot) == []
