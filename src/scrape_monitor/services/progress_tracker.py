"""
In-memory tracker of per-account scraping progress.

The tracker is the single writer of ScrapingProgress records. It ingests
either individual progress updates (push feed) or aggregated status
snapshots polled from the backend, and keeps each account's history
append-only for the lifetime of one scrape run.
"""
from typing import Dict, List, Optional, Tuple

from ..core.logging import logger
from ..models.progress import ScrapingEvent, ScrapingProgress
from ..models.status import is_error, is_terminal, parse_status
from ..models.wire import AggregatedRefreshStatus, OperationStatusDetail, ProgressUpdate
from ..utils.relative_time import ensure_aware, utc_now


class ProgressTracker:
    """
    Holds the progress records of the current scrape run.

    Records are created on the first event seen for an account and dropped by
    start_run(), so a new run never inherits the history of an earlier one.
    """

    def __init__(self):
        self._records: Dict[str, ScrapingProgress] = {}
        self._refresh_in_progress = False
        self._run_number = 0

    @property
    def refresh_in_progress(self) -> bool:
        """Backend's view of whether a refresh is running, from the last snapshot."""
        return self._refresh_in_progress

    @property
    def run_number(self) -> int:
        return self._run_number

    def start_run(self):
        """Forget every record; the next events start fresh histories."""
        self._run_number += 1
        dropped = len(self._records)
        self._records = {}
        self._refresh_in_progress = True
        logger.info(f"Started scrape run {self._run_number} (dropped {dropped} records)")

    def get(self, account_number: str) -> Optional[ScrapingProgress]:
        return self._records.get(account_number)

    def records(self) -> List[ScrapingProgress]:
        """Records in the order accounts were first seen."""
        return list(self._records.values())

    def has_failures(self) -> bool:
        return any(is_error(record.status) for record in self._records.values())

    def all_terminal(self) -> bool:
        return all(is_terminal(record.status) for record in self._records.values())

    def _get_or_create(self, account_number: str, account_name: str) -> ScrapingProgress:
        record = self._records.get(account_number)
        if record is None:
            record = ScrapingProgress(account_number=account_number, account_name=account_name)
            self._records[account_number] = record
            logger.debug(f"Tracking progress for account ...{record.masked_account_number}")
        elif account_name and not record.account_name:
            record.account_name = account_name
        return record

    def apply_update(self, update: ProgressUpdate) -> ScrapingProgress:
        """
        Append one pushed progress event to its account.

        Fed by POST /dashboard/progress, where the backend (or a relay of its
        progress feed) pushes events as they happen.

        Args:
            update: Progress event for a single account

        Returns:
            The updated progress record
        """
        record = self._get_or_create(update.account_number, update.account_name)
        event = record.record(update.status, timestamp=update.timestamp, message=update.message)
        logger.debug(
            f"Account ...{record.masked_account_number} -> {event.status}"
            + (f" ({event.message})" if event.message else "")
        )
        return record

    def apply_snapshot(self, snapshot: AggregatedRefreshStatus) -> List[ScrapingProgress]:
        """
        Merge an aggregated status snapshot into the tracked records.

        Args:
            snapshot: Full progress map as returned by the backend

        Returns:
            Records touched by the snapshot
        """
        touched = []
        for key, detail in snapshot.progress_map.items():
            account_number = detail.account_number or key
            touched.append(self._merge_detail(account_number, detail))

        self._refresh_in_progress = snapshot.refresh_in_progress
        return touched

    def _merge_detail(self, account_number: str, detail: OperationStatusDetail) -> ScrapingProgress:
        record = self._get_or_create(account_number, detail.account_name)

        if detail.history:
            record = self._merge_history(record, detail)
        elif detail.status and self._detail_changed(record, detail):
            record.record(
                detail.status,
                timestamp=detail.last_update_time,
                message=detail.error_message
            )

        record.attach_error(detail.error_message)
        return record

    @staticmethod
    def _detail_changed(record: ScrapingProgress, detail: OperationStatusDetail) -> bool:
        if not record.history:
            return True
        latest = record.history[-1]
        return latest.status != parse_status(detail.status) or latest.message != detail.error_message

    def _merge_history(self, record: ScrapingProgress, detail: OperationStatusDetail) -> ScrapingProgress:
        local = record.history
        remote = self._snapshot_events(detail)

        if remote[:len(local)] == local:
            for event in remote[len(local):]:
                record.record(event.status, timestamp=event.timestamp, message=event.message)
            return record

        if local[:len(remote)] == remote:
            logger.debug(f"Ignoring stale snapshot for account ...{record.masked_account_number}")
            return record

        # Histories diverged: the backend started a new run for this account
        logger.info(f"Resetting progress for account ...{record.masked_account_number}: new run detected")
        replacement = ScrapingProgress(
            account_number=record.account_number,
            account_name=detail.account_name or record.account_name,
            start_time=ensure_aware(detail.start_time) if detail.start_time else utc_now()
        )
        for event in remote:
            replacement.record(event.status, timestamp=event.timestamp, message=event.message)
        self._records[record.account_number] = replacement
        return replacement

    @staticmethod
    def _snapshot_events(detail: OperationStatusDetail) -> Tuple[ScrapingEvent, ...]:
        return tuple(
            ScrapingEvent(
                status=parse_status(entry.status),
                timestamp=ensure_aware(entry.timestamp),
                message=entry.message
            )
            for entry in detail.history
        )
