"""
Tests for the sqlite follow-up store.
"""

import json
import sqlite3
import threading

import pytest

from conftest import make_record

from followups.core.errors import (
    AlreadyProcessedError,
    DuplicatePendingError,
    InvalidTransitionError,
    NotFoundError,
)
from followups.core.store import FollowUpStore
from followups.core.workflow import FollowUpStatus


class TestCreate:
    def test_create_and_get(self, store):
        record = store.create(make_record("d1"))

        loaded = store.get_by_id(record.id)
        assert loaded == record
        assert loaded.status == FollowUpStatus.PENDING
        assert loaded.sent_at is None

    def test_get_unknown_returns_none(self, store):
        assert store.get_by_id("missing") is None

    def test_one_pending_per_deal(self, store):
        first = store.create(make_record("d1"))

        with pytest.raises(DuplicatePendingError) as exc:
            store.create(make_record("d1"))
        assert exc.value.deal_id == "d1"
        assert exc.value.existing_id == first.id
        assert len(store.get_all()) == 1

    def test_new_pending_allowed_after_close(self, store):
        first = store.create(make_record("d1"))
        store.transition(first.id, FollowUpStatus.DISMISSED)

        second = store.create(make_record("d1"))
        assert store.get_pending_by_deal("d1").id == second.id

    def test_pending_index_enforced_by_database(self, store):
        store.create(make_record("d1"))
        conn = sqlite3.connect(str(store.db_path))
        try:
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO follow_ups (id, deal_id, status, created_at, record) VALUES (?, ?, ?, ?, ?)",
                    ("x", "d1", "pending", "2026-03-10T00:00:00Z", "{}"),
                )
        finally:
            conn.close()

    def test_create_rejects_sent_at_on_pending(self, store):
        with pytest.raises(InvalidTransitionError):
            store.create(make_record("d1", sent_at="2026-03-10T12:00:00Z"))

    def test_duplicate_id_rejected(self, store):
        record = store.create(make_record("d1"))
        with pytest.raises(InvalidTransitionError):
            store.create(make_record("d2", id=record.id))


class TestQueries:
    def test_insertion_order(self, store):
        ids = [store.create(make_record(f"d{i}")).id for i in range(5)]
        assert [r.id for r in store.get_all()] == ids

    def test_list_by_status(self, store):
        a = store.create(make_record("a"))
        b = store.create(make_record("b"))
        store.transition(a.id, FollowUpStatus.DISMISSED)

        assert [r.id for r in store.list_by_status(FollowUpStatus.PENDING)] == [b.id]
        assert [r.id for r in store.list_by_status(FollowUpStatus.DISMISSED)] == [a.id]
        assert store.list_by_status(FollowUpStatus.SENT) == []

    def test_export_json_uses_camel_case(self, store):
        store.create(make_record("d1"))
        exported = store.export_json()

        assert len(exported) == 1
        assert exported[0]["dealId"] == "d1"
        assert exported[0]["status"] == "pending"
        assert exported[0]["sentAt"] is None
        json.dumps(exported)

    def test_persists_across_instances(self, store):
        record = store.create(make_record("d1"))
        reopened = FollowUpStore(store.db_path)
        assert reopened.get_by_id(record.id) == record

    def test_ping(self, store):
        assert store.ping() is True


class TestUpdate:
    def test_update_merges_fields(self, store):
        record = store.create(make_record("d1"))

        updated = store.update(record.id, {"message_ref": "1700000000.000001"})
        assert updated.message_ref == "1700000000.000001"
        assert updated.draft_subject == record.draft_subject
        assert store.get_by_id(record.id).message_ref == "1700000000.000001"

    def test_update_unknown_returns_none(self, store):
        assert store.update("missing", {"message_ref": "x"}) is None

    def test_update_to_sent_requires_sent_at(self, store):
        record = store.create(make_record("d1"))
        with pytest.raises(InvalidTransitionError):
            store.update(record.id, {"status": FollowUpStatus.SENT})
        assert store.get_by_id(record.id).status == FollowUpStatus.PENDING

    def test_update_cannot_reopen(self, store):
        record = store.create(make_record("d1"))
        store.update(record.id, {"status": FollowUpStatus.DISMISSED})
        with pytest.raises(InvalidTransitionError):
            store.update(record.id, {"status": FollowUpStatus.PENDING})

    def test_update_cannot_change_deal_id(self, store):
        record = store.create(make_record("d1"))
        with pytest.raises(InvalidTransitionError):
            store.update(record.id, {"deal_id": "d2"})

    def test_concurrent_updates_on_same_id_keep_both_fields(self, store):
        records = [store.create(make_record(f"d{i}")) for i in range(10)]
        errors = []

        def writer(field, value):
            barrier.wait()
            try:
                for record in records:
                    store.update(record.id, {field: value})
            except Exception as e:
                errors.append(e)

        barrier = threading.Barrier(2)
        threads = [
            threading.Thread(target=writer, args=("message_ref", "1700000000.000042")),
            threading.Thread(target=writer, args=("urgency_reason", "Champion went quiet")),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        for record in records:
            stored = store.get_by_id(record.id)
            assert stored.message_ref == "1700000000.000042"
            assert stored.urgency_reason == "Champion went quiet"


class TestTransition:
    def test_pending_to_sent(self, store):
        record = store.create(make_record("d1"))

        sent = store.transition(record.id, FollowUpStatus.SENT, sent_at="2026-03-10T12:00:00Z")
        assert sent.status == FollowUpStatus.SENT
        assert sent.sent_at == "2026-03-10T12:00:00Z"
        assert store.get_pending_by_deal("d1") is None

    def test_second_transition_rejected(self, store):
        record = store.create(make_record("d1"))
        store.transition(record.id, FollowUpStatus.DISMISSED)

        with pytest.raises(AlreadyProcessedError) as exc:
            store.transition(record.id, FollowUpStatus.SENT, sent_at="2026-03-10T12:00:00Z")
        assert exc.value.status == "dismissed"
        assert store.get_by_id(record.id).sent_at is None

    def test_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            store.transition("missing", FollowUpStatus.DISMISSED)
