"""Durable SQLite-backed enrichment queue and top-prospect enrichment."""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from .errors import StorageError
from .models import Contact, ContactStore, EnrichmentQueueItem, TierApi

QUEUED = "queued"
RUNNING = "running"
DONE = "done"
FAILED = "failed"

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0
TOP_PROSPECT_MIN_SCORE = 70
TOP_PROSPECT_LIMIT = 10
ENRICHMENT_MARKER = "contact_enrichment"

SCHEMA = """
CREATE TABLE IF NOT EXISTS enrichment_queue (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    contact_id INTEGER NOT NULL,
    company_id INTEGER NOT NULL,
    search_id TEXT NOT NULL,
    priority INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'queued',
    attempts INTEGER NOT NULL DEFAULT 0,
    last_error TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_enrichment_queue_status
    ON enrichment_queue (status, priority DESC, id);
"""

SleepFn = Callable[[float], None]


@dataclass(frozen=True)
class QueuedJob:
    """A claimed queue row."""

    id: int
    item: EnrichmentQueueItem
    attempts: int
    status: str


def _row_to_job(row: sqlite3.Row) -> QueuedJob:
    return QueuedJob(
        id=row["id"],
        item=EnrichmentQueueItem(
            contact_id=row["contact_id"],
            company_id=row["company_id"],
            search_id=row["search_id"],
            priority=row["priority"],
        ),
        attempts=row["attempts"],
        status=row["status"],
    )


class SqliteEnrichmentQueue:
    """Priority queue persisted in SQLite.

    Rows move ``queued -> running -> done | failed``. Highest priority is
    claimed first, FIFO within a priority. Rows left ``running`` by a crash
    are returned to ``queued`` by ``recover_stalled``.
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        logger: logging.Logger,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep_fn: SleepFn = time.sleep,
    ) -> None:
        self._conn = sqlite3.connect(path, timeout=30, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA)
        self._lock = Lock()
        self._logger = logger
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._sleep = sleep_fn

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def enqueue(self, item: EnrichmentQueueItem) -> int | None:
        """Add an item; returns None when the contact is already queued for this search."""
        with self._lock, self._conn:
            existing = self._conn.execute(
                """
                SELECT id FROM enrichment_queue
                WHERE contact_id = ? AND search_id = ? AND status IN (?, ?)
                """,
                (item.contact_id, item.search_id, QUEUED, RUNNING),
            ).fetchone()
            if existing:
                return None
            cur = self._conn.execute(
                """
                INSERT INTO enrichment_queue (contact_id, company_id, search_id, priority)
                VALUES (?, ?, ?, ?)
                """,
                (item.contact_id, item.company_id, item.search_id, item.priority),
            )
            return int(cur.lastrowid)

    def claim_next(self) -> QueuedJob | None:
        with self._lock, self._conn:
            row = self._conn.execute(
                """
                SELECT * FROM enrichment_queue
                WHERE status = ?
                ORDER BY priority DESC, id ASC
                LIMIT 1
                """,
                (QUEUED,),
            ).fetchone()
            if row is None:
                return None
            self._conn.execute(
                """
                UPDATE enrichment_queue
                SET status = ?, attempts = attempts + 1, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (RUNNING, row["id"]),
            )
            claimed = self._conn.execute(
                "SELECT * FROM enrichment_queue WHERE id = ?", (row["id"],)
            ).fetchone()
        return _row_to_job(claimed)

    def complete(self, job_id: int) -> None:
        self._set_status(job_id, DONE, None)

    def fail(self, job_id: int, error: str) -> str:
        """Requeue a failed job, or mark it failed once attempts are exhausted."""
        with self._lock:
            row = self._conn.execute(
                "SELECT attempts FROM enrichment_queue WHERE id = ?", (job_id,)
            ).fetchone()
        if row is None:
            raise StorageError(f"Queue job {job_id} not found")
        status = FAILED if row["attempts"] >= self._max_attempts else QUEUED
        self._set_status(job_id, status, error)
        return status

    def _set_status(self, job_id: int, status: str, error: str | None) -> None:
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE enrichment_queue
                SET status = ?, last_error = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (status, error, job_id),
            )
        if cur.rowcount == 0:
            raise StorageError(f"Queue job {job_id} not found")

    def recover_stalled(self) -> int:
        """Return jobs stuck in ``running`` to ``queued``; returns how many."""
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE enrichment_queue
                SET status = ?, updated_at = CURRENT_TIMESTAMP
                WHERE status = ?
                """,
                (QUEUED, RUNNING),
            )
        if cur.rowcount:
            self._logger.info("Recovered %d stalled enrichment jobs", cur.rowcount)
        return cur.rowcount

    def counts(self) -> dict[str, int]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT status, COUNT(*) AS total FROM enrichment_queue GROUP BY status"
            ).fetchall()
        totals = {QUEUED: 0, RUNNING: 0, DONE: 0, FAILED: 0}
        totals.update({row["status"]: row["total"] for row in rows})
        return totals

    def process(
        self, handler: Callable[[EnrichmentQueueItem], None], *, limit: int | None = None
    ) -> int:
        """Run queued jobs through ``handler`` sequentially; returns jobs finished."""
        finished = 0
        while limit is None or finished < limit:
            job = self.claim_next()
            if job is None:
                break
            try:
                handler(job.item)
            except Exception as exc:
                status = self.fail(job.id, str(exc))
                self._logger.warning(
                    "Enrichment job %d for contact %d failed (%s): %s",
                    job.id,
                    job.item.contact_id,
                    status,
                    exc,
                )
                if status == FAILED:
                    finished += 1
                else:
                    self._sleep(self._retry_delay)
                continue
            self.complete(job.id)
            finished += 1
        return finished


class EnrichmentService:
    """Queues a company's strongest prospects for AI contact enrichment."""

    def __init__(
        self,
        *,
        store: ContactStore,
        queue: SqliteEnrichmentQueue,
        tier_api: TierApi,
        logger: logging.Logger,
    ) -> None:
        self._store = store
        self._queue = queue
        self._tier_api = tier_api
        self._logger = logger

    def select_top_prospects(self, company_id: int) -> list[Contact]:
        candidates = [
            contact
            for contact in self._store.list_contacts_by_company(company_id)
            if (contact.name_confidence_score or 0) >= TOP_PROSPECT_MIN_SCORE
            and not contact.email
            and ENRICHMENT_MARKER not in contact.completed_searches
        ]
        candidates.sort(key=lambda contact: contact.name_confidence_score or 0, reverse=True)
        return candidates[:TOP_PROSPECT_LIMIT]

    def enrich_top_prospects(self, company_id: int, search_id: str) -> list[EnrichmentQueueItem]:
        queued: list[EnrichmentQueueItem] = []
        for contact in self.select_top_prospects(company_id):
            item = EnrichmentQueueItem(
                contact_id=contact.id,
                company_id=company_id,
                search_id=search_id,
                priority=contact.name_confidence_score or 0,
            )
            if self._queue.enqueue(item) is not None:
                queued.append(item)
        self._logger.info("Queued %d top prospects for company %d", len(queued), company_id)
        return queued

    def _enrich_one(self, item: EnrichmentQueueItem) -> None:
        self._tier_api.run_tier(
            item.contact_id,
            "enrich",
            {"search_context": {"search_id": item.search_id}, "silent": True},
        )

    def process_pending(self, limit: int | None = None) -> int:
        self._queue.recover_stalled()
        return self._queue.process(self._enrich_one, limit=limit)
