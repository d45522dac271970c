"""Domain models for rights requests and their review pointers."""

from dataclasses import dataclass, field
from enum import Enum


class RequestStatus(Enum):
    """Review status values (single source of truth)."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    USER_CANCELED = "User Canceled"
    RM_CANCELED = "RM Canceled"
    QUOTE_PENDING = "Quote Pending"
    RELEASE_PENDING = "Release Pending"
    DONE = "Done"


REVIEWER_STATUSES: frozenset[str] = frozenset(
    {
        RequestStatus.IN_PROGRESS.value,
        RequestStatus.RM_CANCELED.value,
        RequestStatus.QUOTE_PENDING.value,
        RequestStatus.RELEASE_PENDING.value,
        RequestStatus.DONE.value,
    }
)
SUBMITTER_STATUSES: frozenset[str] = frozenset({RequestStatus.USER_CANCELED.value})

UNASSIGNED_PARTITION = "unassigned"


def request_key(owner_email: str, request_id: str) -> str:
    """Primary-store key of a rights request."""
    return f"user:{owner_email}:rights-request:{request_id}"


def request_prefix(owner_email: str) -> str:
    return f"user:{owner_email}:rights-request:"


def review_key(partition: str, request_id: str) -> str:
    """Review-store key; partition is a reviewer email or ``unassigned``."""
    return f"user:{partition}:rights-request-review:{request_id}"


def review_prefix(partition: str) -> str:
    return f"user:{partition}:rights-request-review:"


@dataclass
class ReviewDetails:
    """Review state embedded in a rights request."""

    status: str = RequestStatus.NOT_STARTED.value
    reviewer_email: str = ""
    error_message: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "rightsRequestStatus": self.status,
            "rightsReviewer": self.reviewer_email,
            "errorMessage": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> "ReviewDetails":
        data = data or {}
        return cls(
            status=str(data.get("rightsRequestStatus") or RequestStatus.NOT_STARTED.value),
            reviewer_email=str(data.get("rightsReviewer") or ""),
            error_message=str(data.get("errorMessage") or ""),
        )


@dataclass
class RightsRequest:
    """Primary rights request record owned by its submitter."""

    request_id: str
    submitted_by_email: str
    created_at: str
    created_by: str
    last_modified_at: str
    last_modified_by_email: str
    details: dict[str, object]
    review_details: ReviewDetails = field(default_factory=ReviewDetails)
    check_results: dict[str, object] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return request_key(self.submitted_by_email, self.request_id)

    def to_dict(self) -> dict[str, object]:
        return {
            "rightsRequestID": self.request_id,
            "rightsRequestSubmittedUserID": self.submitted_by_email,
            "created": self.created_at,
            "createdBy": self.created_by,
            "lastModified": self.last_modified_at,
            "lastModifiedBy": self.last_modified_by_email,
            "rightsRequestDetails": self.details,
            "rightsRequestReviewDetails": self.review_details.to_dict(),
            "rightsCheckResults": self.check_results,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "RightsRequest":
        return cls(
            request_id=str(data["rightsRequestID"]),
            submitted_by_email=str(data.get("rightsRequestSubmittedUserID") or ""),
            created_at=str(data.get("created") or ""),
            created_by=str(data.get("createdBy") or ""),
            last_modified_at=str(data.get("lastModified") or ""),
            last_modified_by_email=str(data.get("lastModifiedBy") or ""),
            details=dict(data.get("rightsRequestDetails") or {}),
            review_details=ReviewDetails.from_dict(
                data.get("rightsRequestReviewDetails")  # type: ignore[arg-type]
            ),
            check_results=dict(data.get("rightsCheckResults") or {}),
        )


@dataclass
class ReviewPointer:
    """Denormalized pointer placing a request in a review partition."""

    request_key: str
    submitted_by: str
    reviewer_email: str = ""
    assigned_date: str = ""
    assigned_by: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "requestId": self.request_key,
            "rightsReviewer": self.reviewer_email,
            "assignedDate": self.assigned_date,
            "submittedBy": self.submitted_by,
        }
        if self.assigned_by:
            data["assignedBy"] = self.assigned_by
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ReviewPointer":
        return cls(
            request_key=str(data["requestId"]),
            submitted_by=str(data.get("submittedBy") or ""),
            reviewer_email=str(data.get("rightsReviewer") or ""),
            assigned_date=str(data.get("assignedDate") or ""),
            assigned_by=data.get("assignedBy") or None,  # type: ignore[arg-type]
        )
