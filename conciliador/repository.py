"""MongoDB repositories used by the conciliation services."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pymongo import ASCENDING, UpdateOne


@dataclass(frozen=True)
class MerchantPaymentHash:
    unique_id: str
    hash: str


class PaymentRepository:
    """Fetched payments, keyed by their ``uniqueId``."""

    def __init__(self, client: Any, database: str, collection: str = "fetch-kioscos") -> None:
        self.client = client
        self.collection = client[database][collection]

    def save_bulk(self, payments: Sequence[Mapping[str, Any]]) -> None:
        """Upsert every payment by ``uniqueId`` in one ordered bulk write."""
        if not payments:
            raise ValueError("no hay pagos para guardar")
        operations = [
            UpdateOne({"uniqueId": payment["uniqueId"]}, {"$set": dict(payment)}, upsert=True)
            for payment in payments
        ]
        self.collection.bulk_write(operations, ordered=True)

    def find_payments_hash(self, unique_ids: Iterable[str]) -> list[MerchantPaymentHash]:
        """Stored hashes of the payments whose ``uniqueId`` is among ``unique_ids``."""
        cursor = self.collection.find(
            {"uniqueId": {"$in": list(unique_ids)}},
            {"uniqueId": 1, "hash": 1},
        )
        return [
            MerchantPaymentHash(unique_id=doc.get("uniqueId", ""), hash=doc.get("hash", ""))
            for doc in cursor
        ]

    def close(self) -> None:
        self.client.close()


class ReportRepository:
    """Conciliation reports and the entries attached to them."""

    def __init__(self, client: Any, database: str) -> None:
        self.client = client
        self.reports = client[database]["reports"]
        self.data_reports = client[database]["data-reports"]

    def create_report(self, report: Mapping[str, Any]) -> None:
        self.reports.insert_one(dict(report))

    def add_to_report(self, data: Mapping[str, Any]) -> None:
        self.data_reports.insert_one(dict(data))

    def started_report(self, conciliator_id: str, started_at: datetime) -> None:
        self.reports.update_one(
            {"conciliatorId": conciliator_id},
            {"$set": {"startedAt": started_at}},
        )

    def completed_report(
        self,
        conciliator_id: str,
        completed_at: datetime,
        elapsed_time: int,
        entries: Mapping[str, Any],
    ) -> None:
        self.reports.update_one(
            {"conciliatorId": conciliator_id},
            {
                "$set": {
                    "completedAt": completed_at,
                    "elapsedTime": elapsed_time,
                    "entries": dict(entries),
                }
            },
        )

    def find_by_id(self, conciliator_id: str) -> dict[str, Any] | None:
        """The report of a conciliator, or None when there is none."""
        return self.reports.find_one({"conciliatorId": conciliator_id})

    def find_data_by_id(self, conciliator_id: str) -> list[dict[str, Any]]:
        """Entries of a report, oldest first."""
        cursor = self.data_reports.find(
            {"conciliatorId": conciliator_id},
            sort=[("createdAt", ASCENDING)],
        )
        return list(cursor)


class InvokerRepository:
    """Storage handle held by the invoker job."""

    def __init__(self, client: Any, database: str) -> None:
        self.client = client
        self.collection = client[database]["invoker-services"]

    def close(self) -> None:
        self.client.close()