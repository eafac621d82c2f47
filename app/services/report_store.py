"""
Report Store
============
Persists ReportRecords, preferring the hosted database and degrading to a
process-local map.

Backends (ReportStorage implementations):
    - SupabaseReportStore  — PostgREST table over httpx
    - InMemoryReportStore  — dict guarded by a lock

ReportStore policy:
    - Every operation tries the remote backend first (when configured)
    - Any remote failure falls through to the in-memory backend; nothing
      is raised to the caller except "not found"
    - Once a record lives in memory, the in-memory copy is authoritative
      for the rest of the process lifetime
    - There is NO sync between the two backends after a fallback
    - If even the in-memory write fails, a minimal record with a
      "fallback-<ms>" id is produced so create() always returns something

Record ids are "report-<epoch ms>-<0..999>", regenerated on a local clash.
"""
import random
import threading
import time
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

import httpx

from app.core.config import Settings
from app.core.constants import (
    FALLBACK_ID_PREFIX,
    MSG_NOT_FOUND,
    REPORT_ID_PREFIX,
    STATUS_OPEN,
)
from app.models.bug_report import StructuredReport
from app.models.report_record import ReportRecord, TicketRef, utc_now_iso

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A storage backend failed or returned something unusable."""


class ReportNotFoundError(LookupError):
    """No backend holds a report with the requested id."""

    def __init__(self, report_id: str = "") -> None:
        super().__init__(MSG_NOT_FOUND)
        self.report_id = report_id


def generate_report_id(prefix: str = REPORT_ID_PREFIX) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{random.randint(0, 999)}"


def apply_changes(record: ReportRecord, changes: Dict[str, Any]) -> ReportRecord:
    """Merge JSON-shaped ``changes`` into a copy of ``record``. The id never changes."""
    row = record.to_row()
    row.update({k: v for k, v in changes.items() if k != "id"})
    return ReportRecord.model_validate(row)


# ---------------------------------------------------------------------------
# Backend interface
# ---------------------------------------------------------------------------
class ReportStorage(ABC):
    """A place report rows can be written to and read back from."""

    name: str = "storage"

    @abstractmethod
    async def insert(self, record: ReportRecord) -> ReportRecord:
        """Persist a new record and return the stored version."""

    @abstractmethod
    async def get(self, report_id: str) -> ReportRecord:
        """Return the record or raise ReportNotFoundError."""

    @abstractmethod
    async def update(self, report_id: str, changes: Dict[str, Any]) -> ReportRecord:
        """Apply JSON-shaped changes and return the updated record."""


class InMemoryReportStore(ReportStorage):
    """
    Process-local backend.

    Records are deep-copied on the way in and out so callers only ever
    hold copies. A lock guards the map for threaded servers.
    """

    name = "memory"

    def __init__(self) -> None:
        self._reports: Dict[str, ReportRecord] = {}
        self._lock = threading.Lock()

    def __contains__(self, report_id: str) -> bool:
        with self._lock:
            return report_id in self._reports

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)

    def put(self, record: ReportRecord) -> ReportRecord:
        """Insert or replace ``record`` under its id."""
        with self._lock:
            self._reports[record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    def peek(self, report_id: str) -> Optional[ReportRecord]:
        with self._lock:
            record = self._reports.get(report_id)
            return record.model_copy(deep=True) if record else None

    async def insert(self, record: ReportRecord) -> ReportRecord:
        return self.put(record)

    async def get(self, report_id: str) -> ReportRecord:
        record = self.peek(report_id)
        if record is None:
            raise ReportNotFoundError(report_id)
        return record

    async def update(self, report_id: str, changes: Dict[str, Any]) -> ReportRecord:
        with self._lock:
            current = self._reports.get(report_id)
            if current is None:
                raise ReportNotFoundError(report_id)
            updated = apply_changes(current, changes)
            self._reports[report_id] = updated
        return updated.model_copy(deep=True)


class SupabaseReportStore(ReportStorage):
    """
    Hosted backend speaking PostgREST (``<url>/rest/v1/<table>``).

    Usage:
        store = SupabaseReportStore(url, service_key)
        record = await store.insert(record)
        await store.close()
    """

    name = "supabase"

    def __init__(
        self,
        url: str,
        service_key: str,
        table: str = "bug_reports",
        timeout_seconds: float = 30.0,
    ) -> None:
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self.headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        self.timeout_seconds = timeout_seconds
        self._http: Optional[httpx.AsyncClient] = None

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def _request(self, method: str, **kwargs) -> list:
        http = await self._get_http()
        try:
            resp = await http.request(method, self.endpoint, headers=self.headers, **kwargs)
            resp.raise_for_status()
            rows = resp.json()
        except httpx.HTTPStatusError as e:
            raise StorageError(f"Supabase returned HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError(f"Supabase request failed: {e}") from e

        if not isinstance(rows, list):
            raise StorageError("Supabase returned a non-list payload")
        return rows

    @staticmethod
    def _single(rows: list, report_id: str) -> ReportRecord:
        if not rows:
            raise ReportNotFoundError(report_id)
        try:
            return ReportRecord.model_validate(rows[0])
        except ValueError as e:
            raise StorageError(f"Malformed report row for {report_id}: {e}") from e

    async def insert(self, record: ReportRecord) -> ReportRecord:
        rows = await self._request("POST", json=[record.to_row()])
        if not rows:
            raise StorageError("Insert returned no rows")
        return self._single(rows, record.id)

    async def get(self, report_id: str) -> ReportRecord:
        rows = await self._request("GET", params={"id": f"eq.{report_id}", "select": "*"})
        return self._single(rows, report_id)

    async def update(self, report_id: str, changes: Dict[str, Any]) -> ReportRecord:
        rows = await self._request("PATCH", params={"id": f"eq.{report_id}"}, json=changes)
        return self._single(rows, report_id)


# ---------------------------------------------------------------------------
# Fallback policy
# ---------------------------------------------------------------------------
class ReportStore:
    """
    Remote-first report store with in-memory degradation.

    Parameters
    ----------
    remote : ReportStorage or None
        Hosted backend; None runs purely in memory.
    local : InMemoryReportStore or None
        Process-local backend (created if not provided).
    """

    def __init__(
        self,
        remote: Optional[ReportStorage] = None,
        local: Optional[InMemoryReportStore] = None,
    ) -> None:
        self.remote = remote
        self.local = local if local is not None else InMemoryReportStore()

    def _new_id(self) -> str:
        report_id = generate_report_id()
        while report_id in self.local:
            report_id = generate_report_id()
        return report_id

    async def create(
        self,
        report: StructuredReport,
        markdown: str,
        ticket: Optional[TicketRef] = None,
        reporter_email: Optional[str] = None,
        reporter_name: Optional[str] = None,
        files_analyzed: Iterable[str] = (),
        screenshots: Iterable[str] = (),
        feedback_requested: bool = False,
    ) -> ReportRecord:
        """Persist a new report. Always returns a record; never raises."""
        files = list(files_analyzed)
        shots = list(screenshots)
        try:
            record = ReportRecord(
                id=self._new_id(),
                title=report.title,
                content_json=report.model_copy(deep=True),
                content_markdown=markdown,
                files_analyzed=files,
                screenshots=shots,
                status=STATUS_OPEN,
                feedback_requested=feedback_requested,
                reporter_email=reporter_email,
                reporter_name=reporter_name if reporter_email else None,
                linear_issue_id=ticket.id if ticket else None,
                linear_issue_number=ticket.number if ticket else None,
                linear_issue_url=ticket.url if ticket else None,
            )

            if self.remote is not None:
                try:
                    return await self.remote.insert(record)
                except Exception as e:
                    logger.warning("Using in-memory storage as fallback: %s", e)
            else:
                logger.info("Using in-memory storage (remote store not configured)")

            return await self.local.insert(record)
        except Exception as e:
            logger.error("Error storing bug report: %s", e, exc_info=True)

        fallback = ReportRecord(
            id=f"{FALLBACK_ID_PREFIX}-{int(time.time() * 1000)}",
            title=report.title or "Bug Report",
            content_json=report.model_copy(deep=True),
            content_markdown=markdown,
            files_analyzed=files,
            screenshots=shots,
        )
        try:
            self.local.put(fallback)
        except Exception as e:
            logger.error("Could not keep fallback record %s in memory: %s", fallback.id, e)
        return fallback

    async def get(self, report_id: str) -> ReportRecord:
        """
        Fetch a report.

        Raises
        ------
        ReportNotFoundError
            If neither backend holds ``report_id``.
        """
        remote_record: Optional[ReportRecord] = None
        if self.remote is not None:
            try:
                remote_record = await self.remote.get(report_id)
            except ReportNotFoundError:
                logger.debug("Report %s not in remote store, checking memory", report_id)
            except Exception as e:
                logger.warning("Remote retrieval failed, checking in-memory: %s", e)

        local_record = self.local.peek(report_id)
        if local_record is not None:
            return local_record
        if remote_record is not None:
            return remote_record
        raise ReportNotFoundError(report_id)

    async def update(
        self,
        report_id: str,
        changes: Dict[str, Any],
        current: Optional[ReportRecord] = None,
    ) -> ReportRecord:
        """
        Apply JSON-shaped ``changes`` and stamp ``last_updated``.

        ``current`` is the caller's copy of the record; it seeds the
        in-memory map when a remote-only record cannot be updated remotely.

        Raises
        ------
        ReportNotFoundError
            If no backend holds the record and no ``current`` copy was given.
        """
        changes = {**changes, "last_updated": utc_now_iso()}

        remote_record: Optional[ReportRecord] = None
        remote_failed = self.remote is None
        if self.remote is not None:
            try:
                remote_record = await self.remote.update(report_id, changes)
            except ReportNotFoundError:
                remote_failed = True
                logger.debug("Report %s not in remote store, updating memory", report_id)
            except Exception as e:
                remote_failed = True
                logger.warning("Remote update failed, falling back to in-memory: %s", e)

        if report_id in self.local:
            return await self.local.update(report_id, changes)
        if remote_record is not None:
            return remote_record

        if remote_failed and current is not None and current.id == report_id:
            logger.info("Keeping report %s in memory from now on", report_id)
            return self.local.put(apply_changes(current, changes))
        raise ReportNotFoundError(report_id)


def build_report_store(settings: Settings) -> ReportStore:
    """Choose backends once at startup from configuration."""
    remote: Optional[ReportStorage] = None
    if settings.supabase_configured:
        remote = SupabaseReportStore(
            settings.supabase_url,
            settings.supabase_key,
            table=settings.supabase_table,
            timeout_seconds=settings.http_timeout_seconds,
        )
        logger.info("Report store: Supabase table %s with in-memory fallback", settings.supabase_table)
    else:
        logger.info("Report store: in-memory only")
    return ReportStore(remote=remote)
