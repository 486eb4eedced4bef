"""
Inventory service: cached reports, refreshes and snapshot status.
"""
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from .models import Report
from .orchestrator import ReportBuilder
from .progress import NullProgressReporter, ProgressEventType, ProgressReporter
from ..core.config import Config
from ..core.exceptions import (
    DataUnavailableError, ReporterError, SnapshotNotFoundError, StateError, UserCancelled
)
from ..state.snapshot_manager import SnapshotManager


logger = logging.getLogger(__name__)


def format_age(age: timedelta) -> str:
    """Render an age like ``less than a minute`` or ``3 hours``."""
    seconds = age.total_seconds()
    if seconds < 60:
        return "less than a minute"
    if seconds < 3600:
        minutes = int(seconds // 60)
        return "1 minute" if minutes == 1 else f"{minutes} minutes"
    if seconds < 86400:
        hours = int(seconds // 3600)
        return "1 hour" if hours == 1 else f"{hours} hours"
    days = int(seconds // 86400)
    return "1 day" if days == 1 else f"{days} days"


def type_summary(report: Report) -> Dict[str, int]:
    """Non-zero resource counts keyed by type value, for the completion event."""
    return {key: count for key, count in report.summary.by_type().items() if count}


class InventoryService:
    """Serves the saved report and refreshes it from the cloud."""

    def __init__(
        self,
        config: Config,
        builder: Optional[ReportBuilder] = None,
        snapshot_manager: Optional[SnapshotManager] = None
    ):
        self.config = config
        self.builder = builder or ReportBuilder(config)
        self.snapshot_manager = snapshot_manager or SnapshotManager(config.data_dir)

    def get_report(self) -> Report:
        """Return the saved report, collecting one when none exists.

        Raises:
            DataUnavailableError: If there is no usable snapshot and collection fails
        """
        try:
            return self.snapshot_manager.load_report()
        except SnapshotNotFoundError:
            logger.info("No saved report, collecting from OpenStack")
        except StateError as e:
            logger.warning(f"Saved report unusable, collecting from OpenStack: {e}")

        try:
            report = self.builder.build_report()
        except ReporterError as e:
            raise DataUnavailableError(f"No saved report and collection failed: {e.message}", details=e.details)

        self._save(report)
        return report

    def refresh(
        self,
        progress: Optional[ProgressReporter] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Report:
        """Collect a fresh report, save it and prune old backups.

        A cancelled collection is not saved.

        Raises:
            UserCancelled: If ``cancel_event`` was set during collection
            ReporterError: If collection cannot start
        """
        progress = progress or NullProgressReporter()
        cancel_event = cancel_event or threading.Event()

        progress.send(ProgressEventType.START, "Initializing OpenStack client...")
        try:
            report = self.builder.build_report(progress, cancel_event)
            if cancel_event.is_set():
                raise UserCancelled("Refresh cancelled, previous report kept")
        except ReporterError as e:
            progress.send(ProgressEventType.ERROR, f"Failed to fetch resources: {e.message}")
            raise

        self._save(report)
        try:
            removed = self.snapshot_manager.cleanup_backups(timedelta(days=self.config.backup_max_age_days))
            logger.debug(f"Pruned {removed} old backups")
        except StateError as e:
            logger.warning(f"Failed to clean up backups: {e}")

        progress.send(
            ProgressEventType.COMPLETE,
            "Resources refreshed successfully",
            count=report.summary.total_resources,
            summary=type_summary(report),
        )
        return report

    def start_background_refresh(
        self,
        progress: Optional[ProgressReporter] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> threading.Thread:
        """Run ``refresh`` on a daemon thread; failures arrive as ``error`` events."""
        def run():
            try:
                self.refresh(progress, cancel_event)
            except ReporterError as e:
                logger.info(f"Background refresh ended: {e.message}")
            except Exception as e:
                logger.error(f"Background refresh failed: {e}")
                if progress is not None:
                    progress.send(ProgressEventType.ERROR, f"Failed to fetch resources: {e}")

        thread = threading.Thread(target=run, name='inventory-refresh', daemon=True)
        thread.start()
        return thread

    def status(self) -> Dict[str, Any]:
        """Describe the saved snapshot."""
        status: Dict[str, Any] = {
            'report_exists': self.snapshot_manager.report_exists(),
            'last_check': datetime.now(timezone.utc).isoformat(),
        }
        if status['report_exists']:
            try:
                age = self.snapshot_manager.report_age()
            except SnapshotNotFoundError:
                status['report_exists'] = False
                return status
            status['report_age_hours'] = age.total_seconds() / 3600
            status['report_age_human'] = format_age(age)
        return status

    def _save(self, report: Report) -> None:
        try:
            self.snapshot_manager.save_report(report)
        except StateError as e:
            logger.warning(f"Failed to save report: {e}")
