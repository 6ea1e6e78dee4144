"""tr_trading REST API: open/close need a linked wallet, reads need a login."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.database import get_db_session
from src.tr_common.response import ApiResponse, success_response
from src.tr_gateway.auth.dependencies import get_current_user, require_linked_wallet
from src.tr_gateway.user.db_models import UserModel
from src.tr_trading.application.schemas import CloseTradeRequest, OpenTradeRequest
from src.tr_trading.application.service import TradingService

router = APIRouter(tags=["trading"])

_service = TradingService()


@router.post("/open-trade")
async def open_trade(
    body: OpenTradeRequest,
    current_user: Annotated[UserModel, Depends(require_linked_wallet)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.open_trade(
        db, str(current_user.id), body.symbol, body.side, body.leverage, body.margin
    )
    resp = success_response(data.to_wire())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/close-trade")
async def close_trade(
    body: CloseTradeRequest,
    current_user: Annotated[UserModel, Depends(require_linked_wallet)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.close_trade(db, str(current_user.id), str(body.position_id))
    resp = success_response(data.to_wire())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/positions")
async def list_positions(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_positions(db, str(current_user.id))
    resp = success_response(data.to_wire())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/trades")
async def list_trades(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_trades(db, str(current_user.id), cursor, limit)
    resp = success_response(data.to_wire())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
