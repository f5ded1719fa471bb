"""抽選 API ルート

POST /api/groups/{group_id}/raffle         → 200 { group_id, raffle_date, assignment_count }
GET  /api/groups/{group_id}/my-assignment  → 200 { id, group_id, receiver_id, created_at }

失敗時は {"detail": {"code": ..., "message": ...}} を返す。
"""

from __future__ import annotations

import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from secret_santa.domain.errors import RaffleErrorKind, RaffleFailure
from secret_santa.entrypoints.api.deps import get_current_uid, get_raffle_workflow
from secret_santa.services.raffle_workflow import RaffleCompletionWorkflow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/groups", tags=["raffle"])


# ── レスポンスモデル ─────────────────────────────────────────────────────────────


class RaffleResponse(BaseModel):
    group_id: str
    raffle_date: datetime.datetime
    assignment_count: int


class MyAssignmentResponse(BaseModel):
    id: str
    group_id: str
    receiver_id: str
    created_at: datetime.datetime


# ── 失敗種別 → HTTP ステータス ──────────────────────────────────────────────────

_STATUS_BY_KIND: dict[RaffleErrorKind, int] = {
    RaffleErrorKind.NOT_ENOUGH_MEMBERS: status.HTTP_400_BAD_REQUEST,
    RaffleErrorKind.RAFFLE_ALREADY_COMPLETED: status.HTTP_400_BAD_REQUEST,
    RaffleErrorKind.RAFFLE_FAILED: status.HTTP_400_BAD_REQUEST,
    RaffleErrorKind.RAFFLE_NOT_COMPLETED: status.HTTP_400_BAD_REQUEST,
    RaffleErrorKind.NOT_GROUP_ADMIN: status.HTTP_403_FORBIDDEN,
    RaffleErrorKind.NOT_GROUP_MEMBER: status.HTTP_403_FORBIDDEN,
    RaffleErrorKind.GROUP_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RaffleErrorKind.ASSIGNMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def _to_http_error(failure: RaffleFailure) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_KIND[failure.kind],
        detail={"code": failure.code, "message": failure.message},
    )


# ── エンドポイント ────────────────────────────────────────────────────────────────


@router.post("/{group_id}/raffle", response_model=RaffleResponse)
async def perform_raffle(
    group_id: str,
    uid: str = Depends(get_current_uid),
    workflow: RaffleCompletionWorkflow = Depends(get_raffle_workflow),
) -> RaffleResponse:
    """グループの抽選を実行する（管理者のみ、1グループ1回）"""
    outcome = workflow.perform_raffle(group_id, uid)
    if isinstance(outcome, RaffleFailure):
        raise _to_http_error(outcome)

    return RaffleResponse(
        group_id=outcome.group_id,
        raffle_date=outcome.raffle_date,
        assignment_count=outcome.assignment_count,
    )


@router.get("/{group_id}/my-assignment", response_model=MyAssignmentResponse)
async def get_my_assignment(
    group_id: str,
    uid: str = Depends(get_current_uid),
    workflow: RaffleCompletionWorkflow = Depends(get_raffle_workflow),
) -> MyAssignmentResponse:
    """自分がプレゼントを贈る相手を返す"""
    outcome = workflow.get_my_assignment(group_id, uid)
    if isinstance(outcome, RaffleFailure):
        raise _to_http_error(outcome)

    return MyAssignmentResponse(
        id=outcome.id,
        group_id=outcome.group_id,
        receiver_id=outcome.receiver_id,
        created_at=outcome.created_at,
    )
