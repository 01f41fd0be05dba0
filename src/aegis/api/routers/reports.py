"""Report (mention) endpoints.

Every write invalidates the owning incident's cached mentions before the
mentions_updated broadcast, so a reader reacting to the event sees the new
state.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status

from aegis.api.deps import Broadcaster, Coordinator, Records, admit, fetch_or_404
from aegis.api.errors import BadRequestError, NotFoundError
from aegis.api.middleware.rate_limit import REPORTS
from aegis.api.schemas import ReportCreate, ReportUpdate, ReportVerify, VerificationStatus
from aegis.cache.invalidation import InvalidationCoordinator, Mutation
from aegis.events.broadcaster import EventBroadcaster
from aegis.events.publisher import publish_mentions_updated
from aegis.events.schemas import MentionAction
from aegis.persistence.store import RecordStore
from aegis.security.deps import require_permission, require_user
from aegis.security.identity import User
from aegis.security.rbac import Permission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])

TABLE = "reports"


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(admit(REPORTS))])
async def create_report(
    body: ReportCreate,
    records: Records,
    coordinator: Coordinator,
    broadcaster: Broadcaster,
    user: Annotated[User, Depends(require_permission(Permission.CREATE_REPORT))],
) -> dict[str, Any]:
    await fetch_or_404(records, "incidents", body.incident_id, "Incident")

    report = await records.insert(
        TABLE,
        {
            "incident_id": body.incident_id,
            "content": body.content,
            "image_url": body.image_url,
            "user_id": body.user_id or user.id,
            "verification_status": body.verification_status.value,
        },
    )

    await coordinator.invalidate(Mutation.report(report["id"], body.incident_id))
    logger.info(f"Report created: {report['id']} for incident {body.incident_id} by {user.id}")
    publish_mentions_updated(broadcaster, body.incident_id, MentionAction.CREATED, data=report)
    return report


@router.get("")
async def list_reports(
    records: Records,
    _user: Annotated[User, Depends(require_user)],
    verification_status: VerificationStatus | None = None,
    user_id: str | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> list[dict[str, Any]]:
    filters: dict[str, Any] = {}
    if verification_status is not None:
        filters["verification_status"] = verification_status.value
    if user_id:
        filters["user_id"] = user_id
    return await records.select(
        TABLE, filters, order_by="created_at", descending=True, limit=limit, offset=offset
    )


@router.get("/incident/{incident_id}")
async def list_incident_reports(
    incident_id: str,
    records: Records,
    _user: Annotated[User, Depends(require_user)],
    verification_status: VerificationStatus | None = None,
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> dict[str, Any]:
    filters: dict[str, Any] = {"incident_id": incident_id}
    if verification_status is not None:
        filters["verification_status"] = verification_status.value
    reports = await records.select(
        TABLE, filters, order_by="created_at", descending=True, limit=limit, offset=offset
    )
    return {
        "reports": reports,
        "total": len(reports),
        "incident_id": incident_id,
        "filters": {
            "verification_status": verification_status.value if verification_status else None,
            "limit": limit,
            "offset": offset,
        },
    }


@router.get("/incident/{incident_id}/stats")
async def report_stats(
    incident_id: str,
    records: Records,
    _user: Annotated[User, Depends(require_user)],
) -> dict[str, int]:
    """Counts by verification status, plus reports from the last 24 hours."""
    reports = await records.select(TABLE, {"incident_id": incident_id})
    one_day_ago = datetime.now(UTC) - timedelta(days=1)

    stats = {"total": len(reports), "recent": 0}
    for state in VerificationStatus:
        stats[state.value] = sum(1 for r in reports if r.get("verification_status") == state.value)
    for report in reports:
        created_at = _parse_timestamp(report.get("created_at"))
        if created_at is not None and created_at > one_day_ago:
            stats["recent"] += 1
    return stats


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    records: Records,
    _user: Annotated[User, Depends(require_user)],
) -> dict[str, Any]:
    return await fetch_or_404(records, TABLE, report_id, "Report")


@router.put("/{report_id}", dependencies=[Depends(admit(REPORTS))])
async def update_report(
    report_id: str,
    body: ReportUpdate,
    records: Records,
    coordinator: Coordinator,
    broadcaster: Broadcaster,
    user: Annotated[User, Depends(require_permission(Permission.MODERATE_REPORT))],
) -> dict[str, Any]:
    patch = body.patch()
    if not patch:
        raise BadRequestError("No updatable fields provided")
    return await _apply(
        report_id, patch, records, coordinator, broadcaster, user, MentionAction.UPDATED
    )


@router.patch("/{report_id}/verify", dependencies=[Depends(admit(REPORTS))])
async def verify_report(
    report_id: str,
    body: ReportVerify,
    records: Records,
    coordinator: Coordinator,
    broadcaster: Broadcaster,
    user: Annotated[User, Depends(require_permission(Permission.MODERATE_REPORT))],
) -> dict[str, Any]:
    patch = {"verification_status": body.verification_status.value}
    return await _apply(
        report_id, patch, records, coordinator, broadcaster, user, MentionAction.VERIFIED
    )


@router.delete(
    "/{report_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(admit(REPORTS))],
)
async def delete_report(
    report_id: str,
    records: Records,
    coordinator: Coordinator,
    broadcaster: Broadcaster,
    user: Annotated[User, Depends(require_permission(Permission.MODERATE_REPORT))],
) -> Response:
    report = await records.delete(TABLE, report_id)
    if report is None:
        raise NotFoundError("Report", report_id)

    incident_id = report["incident_id"]
    await coordinator.invalidate(Mutation.report(report_id, incident_id))
    logger.info(f"Report deleted: {report_id} by {user.id}")
    publish_mentions_updated(
        broadcaster, incident_id, MentionAction.DELETED, deleted_id=report_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _apply(
    report_id: str,
    patch: dict[str, Any],
    records: RecordStore,
    coordinator: InvalidationCoordinator,
    broadcaster: EventBroadcaster,
    user: User,
    action: MentionAction,
) -> dict[str, Any]:
    report = await records.update(TABLE, report_id, patch)
    if report is None:
        raise NotFoundError("Report", report_id)

    incident_id = report["incident_id"]
    await coordinator.invalidate(Mutation.report(report_id, incident_id))
    logger.info(f"Report {action.value}: {report_id} by {user.id}")
    publish_mentions_updated(broadcaster, incident_id, action, data=report)
    return report


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
