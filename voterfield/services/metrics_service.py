"""Metrics aggregation - read-only summaries, recomputed per request."""

from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from voterfield.db.enums import AssignmentStatus, ResultCode
from voterfield.db.models import Assignment, Interaction, Voter


def completion_percentage(contacted: int, total_voters: int) -> float:
    """contacted / total_voters * 100, one decimal; 0 when there are no voters."""
    if total_voters <= 0:
        return 0.0
    return round(contacted / total_voters * 100, 1)


def get_summary(db: Session, org_id: UUID) -> dict[str, Any]:
    total_voters = db.scalar(
        select(func.count()).select_from(Voter).where(Voter.organization_id == org_id)
    ) or 0

    breakdown_rows = db.execute(
        select(Interaction.result_code, func.count())
        .where(Interaction.organization_id == org_id)
        .group_by(Interaction.result_code)
    ).all()
    result_breakdown = {code.value: 0 for code in ResultCode}
    for code, count in breakdown_rows:
        result_breakdown[code] = count
    total_interactions = sum(result_breakdown.values())
    contacted = result_breakdown[ResultCode.CONTACTED.value]

    status_rows = db.execute(
        select(Assignment.status, func.count())
        .where(Assignment.organization_id == org_id)
        .group_by(Assignment.status)
    ).all()
    assignments_by_status = {status.value: 0 for status in AssignmentStatus}
    for status, count in status_rows:
        assignments_by_status[status] = count

    return {
        "total_voters": total_voters,
        "total_interactions": total_interactions,
        "contacted_count": contacted,
        "completion_percentage": completion_percentage(contacted, total_voters),
        "result_breakdown": result_breakdown,
        "assignments_by_status": assignments_by_status,
    }
