"""
Tests for the ingest queue state machine.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from groupware_rag.core.errors import ValidationError
from groupware_rag.core.ingest_queue import IngestQueue


@pytest.fixture
def queue(tmp_path):
    return IngestQueue(str(tmp_path / "rag.db"))


class TestEnqueue:

    def test_ids_increase(self, queue):
        first = queue.enqueue("alice", "addressbook", "1")
        second = queue.enqueue("alice", "addressbook", "2")
        assert second > first

    def test_new_item_is_pending(self, queue):
        queue_id = queue.enqueue("alice", "calendar", "9", "delete")
        item = queue.get(queue_id)
        assert item.status == "pending"
        assert item.action == "delete"
        assert item.owner_id == "alice"
        assert item.processed_at is None

    def test_unknown_action_rejected(self, queue):
        with pytest.raises(ValidationError):
            queue.enqueue("alice", "addressbook", "1", "reindex")

    def test_empty_item_id_rejected(self, queue):
        with pytest.raises(ValidationError):
            queue.enqueue("alice", "addressbook", "  ")


class TestFetchAndClaim:

    def test_fetch_pending_in_queue_order(self, queue):
        ids = [queue.enqueue("alice", "addressbook", str(i)) for i in range(5)]
        assert [item.queue_id for item in queue.fetch_pending(3)] == ids[:3]

    def test_fetch_pending_by_owner(self, queue):
        queue.enqueue("alice", "addressbook", "1")
        bob_id = queue.enqueue("bob", "addressbook", "2")
        assert [item.queue_id for item in queue.fetch_pending(10, owner_id="bob")] == [bob_id]

    def test_claim_once(self, queue):
        queue_id = queue.enqueue("alice", "addressbook", "1")
        assert queue.claim(queue_id) is True
        assert queue.claim(queue_id) is False
        assert queue.get(queue_id).status == "processing"

    def test_claimed_item_not_fetched(self, queue):
        queue_id = queue.enqueue("alice", "addressbook", "1")
        queue.claim(queue_id)
        assert queue.fetch_pending(10) == []

    def test_concurrent_claims_single_winner(self, queue):
        queue_id = queue.enqueue("alice", "addressbook", "1")
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(queue.claim(queue_id))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert results.count(False) == 7


class TestTerminalStates:

    def test_mark_completed(self, queue):
        queue_id = queue.enqueue("alice", "addressbook", "1")
        queue.claim(queue_id)
        queue.mark_completed(queue_id)

        item = queue.get(queue_id)
        assert item.status == "completed"
        assert item.processed_at is not None

    def test_mark_failed_keeps_message(self, queue):
        queue_id = queue.enqueue("alice", "addressbook", "1")
        queue.claim(queue_id)
        queue.mark_failed(queue_id, "Embedding provider authentication failed")

        item = queue.get(queue_id)
        assert item.status == "failed"
        assert "authentication failed" in item.error_message

    def test_count_by_status(self, queue):
        a = queue.enqueue("alice", "addressbook", "1")
        b = queue.enqueue("alice", "addressbook", "2")
        queue.enqueue("alice", "addressbook", "3")
        queue.claim(a)
        queue.mark_completed(a)
        queue.claim(b)
        queue.mark_failed(b, "boom")

        assert queue.count_by_status("alice") == {"pending": 1, "processing": 0, "completed": 1, "failed": 1}


class TestRequeue:

    def test_requeue_failed_appends_fresh_items(self, queue):
        queue_id = queue.enqueue("alice", "infolog", "5", "index")
        queue.claim(queue_id)
        queue.mark_failed(queue_id, "boom")

        assert queue.requeue_failed("alice") == 1

        pending = queue.fetch_pending(10)
        assert len(pending) == 1
        assert pending[0].queue_id > queue_id
        assert (pending[0].source_app, pending[0].item_id, pending[0].action) == ("infolog", "5", "index")
        assert queue.get(queue_id).status == "failed"

    def test_list_failed(self, queue):
        queue_id = queue.enqueue("alice", "infolog", "5")
        queue.claim(queue_id)
        queue.mark_failed(queue_id, "boom")
        assert [item.queue_id for item in queue.list_failed()] == [queue_id]


class TestSupersede:

    def test_latest_pending_item_wins(self, queue):
        first = queue.enqueue("alice", "addressbook", "1", "index")
        second = queue.enqueue("alice", "addressbook", "1", "index")
        third = queue.enqueue("alice", "addressbook", "1", "delete")
        other = queue.enqueue("alice", "addressbook", "2", "index")

        assert queue.supersede_duplicates() == 2

        assert [item.queue_id for item in queue.fetch_pending(10)] == [third, other]
        for queue_id in (first, second):
            item = queue.get(queue_id)
            assert item.status == "completed"
            assert item.error_message == f"superseded by queue item {third}"

    def test_different_owners_not_collapsed(self, queue):
        queue.enqueue("alice", "addressbook", "1")
        queue.enqueue("bob", "addressbook", "1")
        assert queue.supersede_duplicates() == 0

    def test_processing_item_not_superseded(self, queue):
        first = queue.enqueue("alice", "addressbook", "1")
        queue.claim(first)
        queue.enqueue("alice", "addressbook", "1")

        assert queue.supersede_duplicates() == 0
        assert queue.get(first).status == "processing"


class TestPurge:

    def test_purge_completed_before(self, queue):
        done = queue.enqueue("alice", "addressbook", "1")
        queue.claim(done)
        queue.mark_completed(done)
        pending = queue.enqueue("alice", "addressbook", "2")

        future = datetime.now(timezone.utc) + timedelta(minutes=1)
        assert queue.purge_completed(future) == 1
        assert queue.get(done) is None
        assert queue.get(pending) is not None

    def test_purge_keeps_recent(self, queue):
        done = queue.enqueue("alice", "addressbook", "1")
        queue.claim(done)
        queue.mark_completed(done)

        past = datetime.now(timezone.utc) - timedelta(days=1)
        assert queue.purge_completed(past) == 0
