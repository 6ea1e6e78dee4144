"""tr_referral REST API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.database import get_db_session
from src.tr_common.response import ApiResponse, success_response
from src.tr_gateway.auth.dependencies import get_current_user, require_linked_wallet
from src.tr_gateway.user.db_models import UserModel
from src.tr_referral.application.schemas import (
    ProcessReferralBonusRequest,
    ProcessReferralBonusResponse,
)
from src.tr_referral.application.service import ReferralBonusCascade

router = APIRouter(tags=["referrals"])

_cascade = ReferralBonusCascade()


@router.post("/process-referral-bonus")
async def process_referral_bonus(
    body: ProcessReferralBonusRequest,
    current_user: Annotated[UserModel, Depends(require_linked_wallet)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    outcome = await _cascade.process_claim(
        db, str(body.claim_id), body.claimed_amount, str(current_user.id)
    )
    data = ProcessReferralBonusResponse(
        processed=outcome.processed,
        message=outcome.reason,
        bonus_amount=outcome.bonus_amount,
        referrer_id=outcome.referrer_id,
    )
    resp = success_response(data.to_wire())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/referrals/bonuses")
async def list_bonuses(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _cascade.list_bonuses(db, str(current_user.id), limit)
    resp = success_response(data.to_wire())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
