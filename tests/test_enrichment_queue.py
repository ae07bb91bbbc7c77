import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from lead_discovery.enrichment_queue import (
    DONE,
    FAILED,
    QUEUED,
    EnrichmentService,
    SqliteEnrichmentQueue,
)
from lead_discovery.errors import StorageError
from lead_discovery.models import Company, Contact, EnrichmentQueueItem
from lead_discovery.storage import InMemoryContactStore


def _queue(path: str = ":memory:", **kwargs: Any) -> SqliteEnrichmentQueue:
    return SqliteEnrichmentQueue(path, logger=logging.getLogger("test"), **kwargs)


def _item(contact_id: int, priority: int = 0, search_id: str = "s1") -> EnrichmentQueueItem:
    return EnrichmentQueueItem(
        contact_id=contact_id, company_id=1, search_id=search_id, priority=priority
    )


def test_claim_order_is_priority_then_fifo() -> None:
    queue = _queue()
    queue.enqueue(_item(1, priority=50))
    queue.enqueue(_item(2, priority=90))
    queue.enqueue(_item(3, priority=50))
    claimed = []
    while (job := queue.claim_next()) is not None:
        claimed.append(job.item.contact_id)
        queue.complete(job.id)
    assert claimed == [2, 1, 3]
    assert queue.counts()[DONE] == 3


def test_enqueue_skips_active_duplicates() -> None:
    queue = _queue()
    assert queue.enqueue(_item(1)) is not None
    assert queue.enqueue(_item(1)) is None
    assert queue.enqueue(_item(1, search_id="s2")) is not None


def test_fail_requeues_until_attempts_exhausted() -> None:
    queue = _queue(max_attempts=2)
    queue.enqueue(_item(1))
    first = queue.claim_next()
    assert first is not None
    assert queue.fail(first.id, "timeout") == QUEUED
    second = queue.claim_next()
    assert second is not None
    assert second.attempts == 2
    assert queue.fail(second.id, "timeout") == FAILED
    assert queue.claim_next() is None
    with pytest.raises(StorageError):
        queue.fail(999, "missing")


def test_recover_stalled_survives_restart(tmp_path: Path) -> None:
    path = str(tmp_path / "queue.sqlite")
    queue = _queue(path)
    queue.enqueue(_item(1))
    assert queue.claim_next() is not None
    queue.close()

    reopened = _queue(path)
    assert reopened.claim_next() is None
    assert reopened.recover_stalled() == 1
    job = reopened.claim_next()
    assert job is not None
    assert job.item.contact_id == 1
    reopened.close()


def test_process_retries_then_succeeds() -> None:
    sleeps: list[float] = []
    queue = _queue(retry_delay=0.25, sleep_fn=sleeps.append)
    queue.enqueue(_item(1))
    attempts: list[int] = []

    def flaky(item: EnrichmentQueueItem) -> None:
        attempts.append(item.contact_id)
        if len(attempts) == 1:
            raise RuntimeError("provider hiccup")

    assert queue.process(flaky) == 1
    assert attempts == [1, 1]
    assert sleeps == [0.25]
    assert queue.counts()[DONE] == 1


class RecordingTierApi:
    def __init__(self, store: InMemoryContactStore) -> None:
        self.store = store
        self.calls: list[tuple[int, str]] = []

    def run_tier(
        self, contact_id: int, endpoint: str, payload: Mapping[str, Any]
    ) -> Contact | None:
        _ = payload
        self.calls.append((contact_id, endpoint))
        return self.store.update_contact(
            contact_id, {"completed_searches": ["contact_enrichment"]}
        )

    def get_contact(self, contact_id: int) -> Contact:
        contact = self.store.get_contact(contact_id)
        assert contact is not None
        return contact

    def mark_complete(self, contact_id: int) -> None:
        _ = contact_id


def _store() -> InMemoryContactStore:
    contacts = [
        Contact(id=1, company_id=1, name="Alice Walker", name_confidence_score=84),
        Contact(id=2, company_id=1, name="Marcus Chen", name_confidence_score=74),
        Contact(id=3, company_id=1, name="Dana Okafor", name_confidence_score=60),
        Contact(
            id=4,
            company_id=1,
            name="Priya Natarajan",
            name_confidence_score=90,
            email="priya@acme.com",
        ),
        Contact(
            id=5,
            company_id=1,
            name="Tomas Lind",
            name_confidence_score=95,
            completed_searches=["contact_enrichment"],
        ),
    ]
    return InMemoryContactStore(contacts, [Company(id=1, name="Acme", domain="acme.com")])


def test_select_top_prospects_filters_and_sorts() -> None:
    store = _store()
    service = EnrichmentService(
        store=store,
        queue=_queue(),
        tier_api=RecordingTierApi(store),
        logger=logging.getLogger("test"),
    )
    assert [contact.id for contact in service.select_top_prospects(1)] == [1, 2]


def test_enrich_top_prospects_runs_each_once() -> None:
    store = _store()
    tier_api = RecordingTierApi(store)
    service = EnrichmentService(
        store=store, queue=_queue(), tier_api=tier_api, logger=logging.getLogger("test")
    )
    queued = service.enrich_top_prospects(1, "search-1")
    assert [item.priority for item in queued] == [84, 74]
    assert service.process_pending() == 2
    assert tier_api.calls == [(1, "enrich"), (2, "enrich")]
    assert service.enrich_top_prospects(1, "search-1") == []
