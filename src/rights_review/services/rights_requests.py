"""Rights request submission and review workflow."""

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime

import httpx

from rights_review.domain.errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from rights_review.domain.notifications import NotificationDraft
from rights_review.domain.rights_requests import (
    REVIEWER_STATUSES,
    SUBMITTER_STATUSES,
    UNASSIGNED_PARTITION,
    RequestStatus,
    ReviewDetails,
    ReviewPointer,
    RightsRequest,
    request_key,
    request_prefix,
    review_key,
    review_prefix,
)
from rights_review.services.access import (
    REPORTS_ADMIN,
    REVIEWER_PERMISSIONS,
    RIGHTS_MANAGER,
    RIGHTS_REVIEWER,
    AccessConfigClient,
    list_reviewer_grants,
    resolve_permissions,
)
from rights_review.services.notifications import NotificationService
from rights_review.services.storage import KvNamespaces, get_json, put_json

logger = logging.getLogger(__name__)

CREATED_BY = "rights-review-service"
NOTIFICATION_SENDER = "Rights Management"

_USAGE_RIGHTS_LABELS = {
    "music": "Music",
    "talent": "Talent",
    "photographer": "Photographer",
    "voiceover": "Voiceover",
    "stockFootage": "Stock Footage",
}


@dataclass(frozen=True)
class ReviewListing:
    """Reviews visible to a reviewer, keyed ``rights-request-<id>``."""

    reviews: dict[str, dict[str, object]]
    unassigned_count: int
    assigned_count: int


@dataclass(frozen=True)
class RequestExport:
    """Every stored request keyed by its raw storage key."""

    requests: dict[str, dict[str, object]]
    total_keys: int


@dataclass
class RightsRequestService:
    """Workflow for creating, assigning and progressing rights requests."""

    stores: KvNamespaces
    notification_service: NotificationService
    access_client: AccessConfigClient
    notification_emails: tuple[str, ...] = field(default_factory=tuple)

    async def create_rights_request(
        self, payload: dict[str, object], submitter_email: str
    ) -> dict[str, object]:
        """Store a new request with an unassigned review pointer and notify reviewers."""
        rights_request = build_rights_request(payload, submitter_email)
        put_json(self.stores.requests, rights_request.key, rights_request.to_dict())
        pointer = ReviewPointer(
            request_key=rights_request.key, submitted_by=submitter_email
        )
        put_json(
            self.stores.reviews,
            review_key(UNASSIGNED_PARTITION, rights_request.request_id),
            pointer.to_dict(),
        )
        logger.info(
            "Rights request created",
            extra={"request_id": rights_request.request_id},
        )

        recipients = [
            email
            for email in await self._reviewer_recipients()
            if email != submitter_email
        ]
        if recipients:
            self.notification_service.send_to_multiple(
                recipients,
                NotificationDraft(
                    subject="New Rights Request Submitted",
                    message=(
                        f"A new rights request ({rights_request.request_id}) was "
                        f"submitted by {submitter_email} and is awaiting review."
                    ),
                    sender=NOTIFICATION_SENDER,
                ),
            )
        return rights_request.to_dict()

    def list_rights_requests(self, owner_email: str) -> dict[str, dict[str, object]]:
        """Return the caller's own requests."""
        requests: dict[str, dict[str, object]] = {}
        for key in self.stores.requests.list(
            prefix=request_prefix(owner_email), limit=None
        ):
            data = get_json(self.stores.requests, key.name)
            if data is not None:
                requests[f"rights-request-{data.get('rightsRequestID')}"] = data
        return requests

    def list_reviews_for_reviewer(
        self, reviewer_email: str, permissions: frozenset[str]
    ) -> ReviewListing:
        """Return unassigned reviews plus those assigned to the reviewer."""
        _require_any(permissions, REVIEWER_PERMISSIONS, "Rights reviewer permission required")
        unassigned = self._load_pointers(UNASSIGNED_PARTITION)
        assigned = self._load_pointers(reviewer_email)
        reviews: dict[str, dict[str, object]] = {}
        for pointer in unassigned + assigned:
            data = get_json(self.stores.requests, pointer.request_key)
            if data is None:
                logger.warning(
                    "Skipping orphaned review pointer",
                    extra={"request_key": pointer.request_key},
                )
                continue
            reviews[f"rights-request-{data.get('rightsRequestID')}"] = {
                **data,
                "reviewInfo": pointer.to_dict(),
            }
        return ReviewListing(
            reviews=reviews,
            unassigned_count=len(unassigned),
            assigned_count=len(assigned),
        )

    def assign_review(
        self, request_id: str, self_email: str, permissions: frozenset[str]
    ) -> dict[str, object]:
        """Assign an unassigned review to the caller."""
        _require_any(permissions, REVIEWER_PERMISSIONS, "Rights reviewer permission required")
        return self._move_to_reviewer(request_id, self_email, assigned_by=None)

    async def assign_review_to_reviewer(
        self,
        request_id: str,
        assignee_email: str,
        manager_email: str,
        permissions: frozenset[str],
    ) -> dict[str, object]:
        """Assign an unassigned review to an eligible reviewer on a manager's behalf."""
        _require_any(permissions, {RIGHTS_MANAGER}, "Rights manager permission required")
        assignee_email = assignee_email.strip().lower()
        if not await self._is_eligible_reviewer(assignee_email):
            raise InvalidInputError(
                "Invalid assignee",
                f"{assignee_email} is not a rights reviewer or manager",
            )
        updated = self._move_to_reviewer(
            request_id, assignee_email, assigned_by=manager_email
        )
        self.notification_service.send(
            assignee_email,
            NotificationDraft(
                subject="Rights Request Assigned",
                message=(
                    f"Rights request {request_id} was assigned to you "
                    f"by {manager_email}."
                ),
                sender=NOTIFICATION_SENDER,
            ),
        )
        return updated

    async def list_reviewers(
        self, permissions: frozenset[str]
    ) -> list[dict[str, str]]:
        """Return identities a manager may assign reviews to."""
        _require_any(permissions, {RIGHTS_MANAGER}, "Rights manager permission required")
        config = await self.access_client.load()
        reviewers = {email: RIGHTS_REVIEWER for email in self.notification_emails}
        reviewers.update(list_reviewer_grants(config))
        return [
            {"email": email, "role": role} for email, role in sorted(reviewers.items())
        ]

    def update_review_status(
        self, request_id: str, new_status: str, reviewer_email: str
    ) -> dict[str, object]:
        """Progress a review the caller is assigned to and notify the submitter."""
        if new_status not in REVIEWER_STATUSES:
            raise InvalidInputError("Invalid status")
        pointer_data = get_json(
            self.stores.reviews, review_key(reviewer_email, request_id)
        )
        if pointer_data is None:
            raise NotFoundError("Review not found or not assigned to you")
        pointer = ReviewPointer.from_dict(pointer_data)
        rights_request = self._load_request(pointer.request_key)
        rights_request.review_details.status = new_status
        _touch(rights_request, reviewer_email)
        put_json(self.stores.requests, pointer.request_key, rights_request.to_dict())

        self.notification_service.send(
            rights_request.submitted_by_email,
            NotificationDraft(
                subject="Rights Request Status Update",
                message=(
                    f"The status of your rights request {request_id} "
                    f"changed to {new_status}."
                ),
                sender=NOTIFICATION_SENDER,
            ),
        )
        return rights_request.to_dict()

    def update_submitter_request_status(
        self, request_id: str, new_status: str, submitter_email: str
    ) -> dict[str, object]:
        """Let a submitter cancel their own request."""
        if new_status not in SUBMITTER_STATUSES:
            raise InvalidInputError("Invalid status for submitter")
        key = request_key(submitter_email, request_id)
        data = get_json(self.stores.requests, key)
        if data is None:
            raise NotFoundError("Request not found or not owned by you")
        rights_request = RightsRequest.from_dict(data)
        rights_request.review_details.status = new_status
        _touch(rights_request, submitter_email)
        put_json(self.stores.requests, key, rights_request.to_dict())

        reviewer = rights_request.review_details.reviewer_email
        pointer_key = review_key(reviewer or UNASSIGNED_PARTITION, request_id)
        try:
            raw_pointer = self.stores.reviews.get(pointer_key)
            if raw_pointer is not None:
                self.stores.reviews.put(pointer_key, raw_pointer)
        except Exception:
            logger.exception(
                "Failed to refresh review pointer", extra={"key": pointer_key}
            )
        return rights_request.to_dict()

    def list_all_rights_requests(
        self, caller_email: str, permissions: frozenset[str]
    ) -> RequestExport:
        """Export every request in the primary store, keyed by storage key."""
        if REPORTS_ADMIN not in permissions:
            raise ForbiddenError(
                "Forbidden",
                "Reports admin permission required",
                debug={
                    "userEmail": caller_email,
                    "permissions": sorted(permissions),
                    "required": REPORTS_ADMIN,
                },
            )
        keys = self.stores.requests.list(prefix="user:", limit=None)
        exported: dict[str, dict[str, object]] = {}
        for key in keys:
            data = get_json(self.stores.requests, key.name)
            if data is None:
                continue
            exported[key.name] = {
                **data,
                "rightsRequestID": str(data.get("rightsRequestID") or ""),
            }
        return RequestExport(requests=exported, total_keys=len(keys))

    def _move_to_reviewer(
        self, request_id: str, reviewer_email: str, assigned_by: str | None
    ) -> dict[str, object]:
        unassigned_key = review_key(UNASSIGNED_PARTITION, request_id)
        pointer_data = get_json(self.stores.reviews, unassigned_key)
        if pointer_data is None:
            raise NotFoundError("Unassigned review not found")
        pointer = ReviewPointer.from_dict(pointer_data)
        rights_request = self._load_request(pointer.request_key)

        rights_request.review_details.reviewer_email = reviewer_email
        rights_request.review_details.status = RequestStatus.IN_PROGRESS.value
        _touch(rights_request, assigned_by or reviewer_email)
        put_json(self.stores.requests, pointer.request_key, rights_request.to_dict())

        self.stores.reviews.delete(unassigned_key)
        pointer.reviewer_email = reviewer_email
        pointer.assigned_date = datetime.now(tz=UTC).isoformat()
        pointer.assigned_by = assigned_by
        put_json(
            self.stores.reviews, review_key(reviewer_email, request_id), pointer.to_dict()
        )
        logger.info(
            "Review assigned",
            extra={"request_id": request_id, "assigned_by": assigned_by},
        )
        return rights_request.to_dict()

    def _load_pointers(self, partition: str) -> list[ReviewPointer]:
        pointers = []
        for key in self.stores.reviews.list(prefix=review_prefix(partition), limit=None):
            data = get_json(self.stores.reviews, key.name)
            if data is not None and data.get("requestId"):
                pointers.append(ReviewPointer.from_dict(data))
        return pointers

    def _load_request(self, key: str) -> RightsRequest:
        data = get_json(self.stores.requests, key)
        if data is None:
            raise NotFoundError("Request not found in primary store")
        return RightsRequest.from_dict(data)

    async def _is_eligible_reviewer(self, email: str) -> bool:
        if email in self.notification_emails:
            return True
        config = await self.access_client.load()
        return bool(resolve_permissions(config, email) & REVIEWER_PERMISSIONS)

    async def _reviewer_recipients(self) -> list[str]:
        recipients = list(self.notification_emails)
        try:
            config = await self.access_client.load()
        except (httpx.HTTPError, ValueError):
            logger.exception("Failed to load reviewer grants for notification")
            return recipients
        recipients.extend(list_reviewer_grants(config))
        return recipients


def build_rights_request(
    payload: dict[str, object], submitter_email: str
) -> RightsRequest:
    """Normalise a submission payload into a stored rights request."""
    request_id = f"{int(time.time() * 1000)}{random.randrange(1_000_000)}"  # noqa: S311
    now = format_datetime(datetime.now(tz=UTC), usegmt=True)
    usage_rights = payload.get("usageRightsRequired")
    usage_labels = (
        [
            _USAGE_RIGHTS_LABELS.get(name, name)
            for name, selected in usage_rights.items()
            if selected
        ]
        if isinstance(usage_rights, dict)
        else []
    )
    details = {
        "name": payload.get("agencyName") or "",
        "general": {
            "assets": [
                {"name": asset.get("name") or "", "assetId": asset.get("assetId") or ""}
                for asset in _dict_items(payload.get("restrictedAssets"))
            ],
        },
        "intendedUsage": {
            "rightsStartDate": format_gmt(payload.get("airDate")),
            "rightsEndDate": format_gmt(payload.get("pullDate")),
            "marketsCovered": _named_ids(payload.get("selectedMarkets")),
            "mediaRights": _named_ids(payload.get("selectedMediaChannels")),
        },
        "associateAgency": {
            "agencyOrTcccAssociate": payload.get("agencyType") or "Associate",
            "name": payload.get("agencyName") or "",
            "contactName": payload.get("contactName") or "",
            "emailAddress": payload.get("contactEmail") or submitter_email,
            "phoneNumber": payload.get("contactPhone") or "",
        },
        "materialsNeeded": {
            "dateRequiredBy": format_gmt(payload.get("materialsRequiredDate")),
            "formatsRequiredBy": payload.get("formatsRequired") or "",
            "usageRightsRequired": usage_labels,
            "associateOrAgencyUsers": [],
            "plannedAdaptations": payload.get("adaptationIntention") or "",
        },
        "budgetForUsage": {
            "budgetForMarket": payload.get("budgetForMarket") or "",
            "exceptionsOrNotes": payload.get("exceptionOrNotes") or "",
        },
    }
    return RightsRequest(
        request_id=request_id,
        submitted_by_email=submitter_email,
        created_at=now,
        created_by=CREATED_BY,
        last_modified_at=now,
        last_modified_by_email=submitter_email,
        details=details,
        review_details=ReviewDetails(),
    )


def format_gmt(value: object) -> str:
    """Format a date as ``Mon, 05 Jan 2026 00:00:00 GMT+0000``; '' if unusable."""
    parsed = _parse_date(value)
    if parsed is None:
        return ""
    return format_datetime(parsed, usegmt=True).replace("GMT", "GMT+0000")


def _parse_date(value: object) -> datetime | None:
    if value is None or isinstance(value, bool) or value == "":
        return None
    if isinstance(value, int | float):
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _dict_items(value: object) -> list[dict[str, object]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _named_ids(value: object) -> list[dict[str, str]]:
    return [
        {
            "name": "" if item.get("name") is None else str(item["name"]),
            "id": "" if item.get("id") is None else str(item["id"]),
        }
        for item in _dict_items(value)
    ]


def _touch(rights_request: RightsRequest, email: str) -> None:
    rights_request.last_modified_at = format_datetime(datetime.now(tz=UTC), usegmt=True)
    rights_request.last_modified_by_email = email


def _require_any(
    permissions: frozenset[str], required: set[str] | frozenset[str], message: str
) -> None:
    if not permissions & required:
        raise ForbiddenError("Forbidden", message)
