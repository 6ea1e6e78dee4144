"""tr_account REST API: balance read, JWT required."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_account.application.service import AccountApplicationService
from src.tr_common.database import get_db_session
from src.tr_common.response import ApiResponse, success_response
from src.tr_gateway.auth.dependencies import get_current_user
from src.tr_gateway.user.db_models import UserModel

router = APIRouter(prefix="/account", tags=["account"])

_service = AccountApplicationService()


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, str(current_user.id))
    resp = success_response(data.to_wire())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
