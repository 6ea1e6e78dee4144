"""tr_rewards REST API: claim, reward reads and the leaderboard."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.database import get_db_session
from src.tr_common.enums import LeaderboardPeriod, LeaderboardType
from src.tr_common.response import ApiResponse, success_response
from src.tr_gateway.auth.dependencies import get_current_user, require_linked_wallet
from src.tr_gateway.user.db_models import UserModel
from src.tr_rewards.application.leaderboard_service import LeaderboardService
from src.tr_rewards.application.schemas import ClaimRewardRequest
from src.tr_rewards.application.service import ClaimEngine

router = APIRouter(tags=["rewards"])

_engine = ClaimEngine()
_leaderboard = LeaderboardService()


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/claim-reward")
async def claim_reward(
    body: ClaimRewardRequest,
    current_user: Annotated[UserModel, Depends(require_linked_wallet)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _engine.claim(
        db,
        str(current_user.id),
        body.period,
        body.wallet_address or current_user.linked_wallet_address,
    )
    return _respond(request, data.to_wire())


@router.get("/rewards/summary")
async def rewards_summary(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _engine.summary(db, str(current_user.id))
    return _respond(request, data.to_wire())


@router.get("/rewards/claims")
async def list_claims(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(30, ge=1, le=100),
) -> ApiResponse:
    data = await _engine.list_claims(db, str(current_user.id), limit)
    return _respond(request, data.to_wire())


@router.get("/leaderboard")
async def get_leaderboard(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    board: LeaderboardType = Query(LeaderboardType.VOLUME, alias="type"),
    period: LeaderboardPeriod = Query(LeaderboardPeriod.DAILY),
) -> ApiResponse:
    data = await _leaderboard.board(db, board, period)
    return _respond(request, data.to_wire())


@router.get("/leaderboard/me")
async def get_my_rank(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    period: LeaderboardPeriod = Query(LeaderboardPeriod.DAILY),
) -> ApiResponse:
    data = await _leaderboard.user_rank(db, str(current_user.id), period)
    return _respond(request, data.to_wire())
