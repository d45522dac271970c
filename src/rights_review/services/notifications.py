"""Per-user notification inbox backed by the MESSAGES namespace."""

import json
import logging
import random
import time
from dataclasses import dataclass
from datetime import UTC, datetime

from rights_review.domain.errors import (
    InvalidInputError,
    NotFoundError,
    RightsReviewError,
)
from rights_review.domain.notifications import (
    IMMUTABLE_FIELDS,
    BulkSendResult,
    NotificationDraft,
    notification_key,
    notification_metadata,
)
from rights_review.services.storage import KeyValueStore, put_json

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("id", "subject", "message")


def generate_message_id() -> str:
    return f"msg-{int(time.time() * 1000)}-{random.randrange(1_000_000)}"  # noqa: S311


@dataclass
class NotificationService:
    """Sends notifications and serves each owner's inbox."""

    store: KeyValueStore
    default_sender: str = "system"
    list_limit: int = 1000

    def send(self, recipient_email: str, draft: NotificationDraft) -> bool:
        """Store a new unread notification; return False instead of raising."""
        owner = recipient_email.strip().lower()
        notification = {
            "id": generate_message_id(),
            "owner": owner,
            "date": _now_iso(),
            "subject": draft.subject,
            "message": draft.message,
            "type": draft.type or "Notification",
            "from": draft.sender or "System",
            "priority": draft.priority or "normal",
            "expiresInXDays": draft.expires_in_days or 7,
            "status": "unread",
        }
        try:
            put_json(
                self.store,
                notification_key(owner, str(notification["id"])),
                notification,
                metadata=notification_metadata(notification),
            )
        except Exception:
            logger.exception("Failed to send message to %s", owner)
            return False
        logger.info("Message sent to %s: %s", owner, draft.subject)
        return True

    def send_to_multiple(
        self, recipient_emails: list[str], draft: NotificationDraft
    ) -> BulkSendResult:
        """Send one draft to each distinct recipient, tolerating failures."""
        recipients: list[str] = []
        for email in recipient_emails:
            normalized = email.strip().lower()
            if normalized and normalized not in recipients:
                recipients.append(normalized)
        success = sum(1 for email in recipients if self.send(email, draft))
        result = BulkSendResult(
            total=len(recipients), success=success, failed=len(recipients) - success
        )
        logger.info(
            "Bulk message sent: %s success, %s failed", result.success, result.failed
        )
        return result

    def list(self, owner_email: str) -> list[dict[str, object]]:
        """Return the owner's notifications, skipping undecodable entries."""
        notifications = []
        for key in self.store.list(prefix=f"{owner_email}:", limit=self.list_limit):
            raw = self.store.get(key.name)
            if raw is None:
                continue
            try:
                notifications.append(json.loads(raw))
            except ValueError:
                logger.error("Failed to parse notification %s", key.name)
        return notifications

    def get(self, owner_email: str, notification_id: str) -> dict[str, object]:
        return self._load(owner_email, notification_id)

    def create(self, owner_email: str, fields: dict[str, object]) -> dict[str, object]:
        """Create a notification in the owner's own inbox."""
        missing = [name for name in _REQUIRED_FIELDS if not fields.get(name)]
        if missing:
            raise InvalidInputError(
                "Missing required fields: id, subject, message"
            )
        expires = fields.get("expiresInXDays")
        notification = {
            "id": str(fields["id"]),
            "owner": owner_email,
            "date": _now_iso(),
            "subject": fields["subject"],
            "message": fields["message"],
            "type": fields.get("type") or "Notification",
            "from": fields.get("from") or self.default_sender,
            "priority": fields.get("priority") or "normal",
            "expiresInXDays": expires if expires is not None else 30,
            "status": fields.get("status") or "unread",
        }
        put_json(
            self.store,
            notification_key(owner_email, notification["id"]),
            notification,
            metadata=notification_metadata(notification),
        )
        return notification

    def update(
        self, owner_email: str, notification_id: str, changes: dict[str, object]
    ) -> dict[str, object]:
        """Merge changes into a notification; id, owner and date never change."""
        existing = self._load(owner_email, notification_id)
        updated = {**existing, **changes}
        for name in IMMUTABLE_FIELDS:
            updated[name] = existing.get(name)
        put_json(
            self.store,
            notification_key(owner_email, notification_id),
            updated,
            metadata=notification_metadata(updated),
        )
        return updated

    def delete(self, owner_email: str, notification_id: str) -> None:
        key = notification_key(owner_email, notification_id)
        if self.store.get(key) is None:
            raise NotFoundError("Notification not found")
        self.store.delete(key)

    def _load(self, owner_email: str, notification_id: str) -> dict[str, object]:
        raw = self.store.get(notification_key(owner_email, notification_id))
        if raw is None:
            raise NotFoundError("Notification not found")
        try:
            notification = json.loads(raw)
        except ValueError as exc:
            raise RightsReviewError("Failed to parse notification", str(exc)) from exc
        if not isinstance(notification, dict):
            raise RightsReviewError("Failed to parse notification")
        return notification


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat().replace("+00:00", "Z")
