"""Domain models for per-user notifications."""

from dataclasses import dataclass

IMMUTABLE_FIELDS = ("id", "owner", "date")


def notification_key(owner_email: str, notification_id: str) -> str:
    return f"{owner_email}:{notification_id}"


@dataclass(frozen=True)
class NotificationDraft:
    """Fields supplied by a sender before an id and owner are assigned."""

    subject: str
    message: str
    type: str = "Notification"
    sender: str = "System"
    priority: str = "normal"
    expires_in_days: int = 7


@dataclass(frozen=True)
class BulkSendResult:
    """Outcome of sending one draft to several recipients."""

    total: int
    success: int
    failed: int


def notification_metadata(notification: dict[str, object]) -> dict[str, object]:
    """KV metadata stored alongside a notification for cheap listing."""
    return {
        "priority": notification.get("priority"),
        "status": notification.get("status"),
        "type": notification.get("type"),
    }
