"""Report service: records the life cycle of each conciliation run."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .repository import ReportRepository
from .utils import log


class ReportService:
    """Stores reports and their entries; storage failures are logged, not raised."""

    def __init__(self, repository: ReportRepository, cfg: Any = None) -> None:
        self.repository = repository
        self.cfg = cfg

    def create_report(self, report: Mapping[str, Any]) -> bool:
        """Store a new report. Returns False when storage failed."""
        try:
            self.repository.create_report(report)
        except Exception as exc:  # noqa: BLE001
            log.info("save report error %s", exc)
            return False
        return True

    def add_to_report(self, data: Mapping[str, Any]) -> bool:
        """Attach an entry to a report. Returns False when storage failed."""
        try:
            self.repository.add_to_report(data)
        except Exception as exc:  # noqa: BLE001
            log.info("save data at report error %s", exc)
            return False
        return True

    def started_report(self, conciliator_id: str, started_at: datetime) -> bool:
        """Mark a report as started. Returns False when storage failed."""
        try:
            self.repository.started_report(conciliator_id, started_at)
        except Exception as exc:  # noqa: BLE001
            log.info("save data at report error %s", exc)
            return False
        return True

    def completed_report(
        self,
        conciliator_id: str,
        completed_at: datetime,
        elapsed_time: int,
        entries: Mapping[str, Any],
    ) -> bool:
        """Mark a report as completed with its counts. Returns False when storage failed."""
        try:
            self.repository.completed_report(conciliator_id, completed_at, elapsed_time, entries)
        except Exception as exc:  # noqa: BLE001
            log.info("save data at report error %s", exc)
            return False
        return True