"""Tests for the notification inbox."""

import json

import pytest

from rights_review.domain.errors import InvalidInputError, NotFoundError
from rights_review.domain.notifications import NotificationDraft
from rights_review.services.notifications import NotificationService
from tests.conftest import REVIEWER, SUBMITTER, InMemoryKeyValueStore


def test_send_stores_unread_notification_with_metadata() -> None:
    store = InMemoryKeyValueStore()
    service = NotificationService(store)

    sent = service.send(" Reviewer@Example.com ", NotificationDraft("Hello", "Body"))

    assert sent is True
    [key] = store.entries
    value, metadata, _ = store.entries[key]
    notification = json.loads(value)
    assert key == f"{REVIEWER}:{notification['id']}"
    assert notification["id"].startswith("msg-")
    assert notification["status"] == "unread"
    assert notification["from"] == "System"
    assert notification["expiresInXDays"] == 7
    assert metadata == {"priority": "normal", "status": "unread", "type": "Notification"}


def test_send_to_multiple_dedupes_and_counts_failures() -> None:
    store = InMemoryKeyValueStore(failing_keys={"broken@example.com:"})
    service = NotificationService(store)

    result = service.send_to_multiple(
        [REVIEWER, "Reviewer@example.com", "broken@example.com", SUBMITTER, ""],
        NotificationDraft("Subject", "Message"),
    )

    assert (result.total, result.success, result.failed) == (3, 2, 1)
    assert len(service.list(REVIEWER)) == 1
    assert len(service.list(SUBMITTER)) == 1


def test_create_requires_id_subject_and_message() -> None:
    service = NotificationService(InMemoryKeyValueStore())

    with pytest.raises(InvalidInputError) as excinfo:
        service.create(REVIEWER, {"id": "n1", "subject": "Only subject"})

    assert excinfo.value.error == "Missing required fields: id, subject, message"


def test_create_applies_defaults() -> None:
    service = NotificationService(InMemoryKeyValueStore(), default_sender="system@example.com")

    created = service.create(REVIEWER, {"id": "n1", "subject": "S", "message": "M"})

    assert created["owner"] == REVIEWER
    assert created["from"] == "system@example.com"
    assert created["expiresInXDays"] == 30
    assert created["status"] == "unread"
    assert service.get(REVIEWER, "n1") == created


def test_update_keeps_immutable_fields() -> None:
    service = NotificationService(InMemoryKeyValueStore())
    created = service.create(REVIEWER, {"id": "n1", "subject": "S", "message": "M"})

    updated = service.update(
        REVIEWER,
        "n1",
        {"id": "hijack", "owner": SUBMITTER, "date": "1970-01-01", "status": "read"},
    )

    assert updated["status"] == "read"
    assert updated["id"] == "n1"
    assert updated["owner"] == REVIEWER
    assert updated["date"] == created["date"]
    assert service.get(REVIEWER, "n1")["status"] == "read"


def test_inbox_is_scoped_to_owner() -> None:
    service = NotificationService(InMemoryKeyValueStore())
    service.create(REVIEWER, {"id": "n1", "subject": "S", "message": "M"})

    with pytest.raises(NotFoundError):
        service.get(SUBMITTER, "n1")
    with pytest.raises(NotFoundError):
        service.delete(SUBMITTER, "n1")
    assert service.list(SUBMITTER) == []


def test_delete_removes_notification() -> None:
    service = NotificationService(InMemoryKeyValueStore())
    service.create(REVIEWER, {"id": "n1", "subject": "S", "message": "M"})

    service.delete(REVIEWER, "n1")

    assert service.list(REVIEWER) == []
    with pytest.raises(NotFoundError):
        service.delete(REVIEWER, "n1")


def test_list_skips_undecodable_entries() -> None:
    store = InMemoryKeyValueStore()
    service = NotificationService(store)
    service.create(REVIEWER, {"id": "n1", "subject": "S", "message": "M"})
    store.put(f"{REVIEWER}:broken", "{not json")

    notifications = service.list(REVIEWER)

    assert [item["id"] for item in notifications] == ["n1"]
