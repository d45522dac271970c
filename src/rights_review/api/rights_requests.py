"""Rights request submission and review endpoints."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from rights_review.api.auth import with_authentication
from rights_review.domain.errors import InvalidInputError
from rights_review.domain.sessions import User  # noqa: TC001

if TYPE_CHECKING:
    from rights_review.containers import AppContainer

router = APIRouter(prefix="/api/rightsrequests", tags=["rights-requests"])


class StatusChange(BaseModel):
    """Body of the status endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    request_id: str | None = Field(default=None, alias="requestId")
    status: str | None = None


class Assignment(BaseModel):
    """Body of the assignment endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    request_id: str | None = Field(default=None, alias="requestId")
    assignee_email: str | None = Field(default=None, alias="assigneeEmail")


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _require_status_change(body: StatusChange) -> tuple[str, str]:
    if not body.request_id or not body.status:
        raise InvalidInputError("Request ID and status are required")
    return body.request_id, body.status


@router.post("")
async def create_rights_request(
    request: Request,
    payload: dict[str, Any] = Body(...),
    user: User = Depends(with_authentication),
) -> dict[str, object]:
    """Submit a new rights request."""
    service = _container(request).rights_request_service
    data = await service.create_rights_request(payload, user.email)
    return {
        "success": True,
        "data": data,
        "message": "Rights request created successfully",
    }


@router.get("")
async def list_rights_requests(
    request: Request, user: User = Depends(with_authentication)
) -> dict[str, object]:
    """List the caller's own requests."""
    requests = _container(request).rights_request_service.list_rights_requests(
        user.email
    )
    return {"success": True, "data": requests, "count": len(requests)}


@router.post("/status")
async def update_submitter_status(
    request: Request,
    body: StatusChange,
    user: User = Depends(with_authentication),
) -> dict[str, object]:
    """Cancel one of the caller's own requests."""
    request_id, status = _require_status_change(body)
    data = _container(request).rights_request_service.update_submitter_request_status(
        request_id, status, user.email
    )
    return {"success": True, "data": data, "message": "Request cancelled successfully"}


@router.get("/all")
async def list_all_rights_requests(
    request: Request, user: User = Depends(with_authentication)
) -> dict[str, object]:
    """Export every request for reporting."""
    exported = _container(request).rights_request_service.list_all_rights_requests(
        user.email, user.permissions
    )
    return {
        "success": True,
        "data": exported.requests,
        "count": len(exported.requests),
        "totalKeys": exported.total_keys,
    }


@router.get("/reviews")
async def list_reviews(
    request: Request, user: User = Depends(with_authentication)
) -> dict[str, object]:
    """List unassigned reviews and reviews assigned to the caller."""
    listing = _container(request).rights_request_service.list_reviews_for_reviewer(
        user.email, user.permissions
    )
    return {
        "success": True,
        "data": listing.reviews,
        "count": len(listing.reviews),
        "unassignedCount": listing.unassigned_count,
        "assignedCount": listing.assigned_count,
    }


@router.get("/reviews/reviewers")
async def list_reviewers(
    request: Request, user: User = Depends(with_authentication)
) -> dict[str, object]:
    """List identities a manager can assign reviews to."""
    reviewers = await _container(request).rights_request_service.list_reviewers(
        user.permissions
    )
    return {"success": True, "data": reviewers}


@router.post("/reviews/assign")
async def assign_review(
    request: Request,
    body: Assignment,
    user: User = Depends(with_authentication),
) -> dict[str, object]:
    """Assign a review to the caller, or to another reviewer when one is named."""
    if body.assignee_email and body.assignee_email.strip().lower() != user.email:
        return await assign_review_to(request, body, user)
    if not body.request_id:
        raise InvalidInputError("Request ID is required")
    data = _container(request).rights_request_service.assign_review(
        body.request_id, user.email, user.permissions
    )
    return {"success": True, "data": data, "message": "Review assigned successfully"}


@router.post("/reviews/assign-to")
async def assign_review_to(
    request: Request,
    body: Assignment,
    user: User = Depends(with_authentication),
) -> dict[str, object]:
    """Assign a review to a named reviewer on a manager's behalf."""
    if not body.request_id or not body.assignee_email:
        raise InvalidInputError("Request ID and assignee email are required")
    container = _container(request)
    data = await container.rights_request_service.assign_review_to_reviewer(
        body.request_id, body.assignee_email, user.email, user.permissions
    )
    # Let the KV writes propagate before the caller re-lists reviews.
    await asyncio.sleep(container.settings.kv_propagation_delay_seconds)
    return {"success": True, "data": data, "message": "Review assigned successfully"}


@router.post("/reviews/status")
async def update_review_status(
    request: Request,
    body: StatusChange,
    user: User = Depends(with_authentication),
) -> dict[str, object]:
    """Move a review assigned to the caller to a new status."""
    request_id, status = _require_status_change(body)
    data = _container(request).rights_request_service.update_review_status(
        request_id, status, user.email
    )
    return {"success": True, "data": data, "message": "Status updated successfully"}
