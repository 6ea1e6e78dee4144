"""Auth API router: register, login, refresh, link wallet.

All endpoints return ApiResponse. request_id is read from request.state
(injected by RequestLogMiddleware).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tr_common.database import get_db_session
from src.tr_common.response import ApiResponse, success_response
from src.tr_gateway.auth.dependencies import get_current_user
from src.tr_gateway.user.db_models import UserModel
from src.tr_gateway.user.schemas import (
    LinkWalletRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfo,
)
from src.tr_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


def _get_request_id(request: Request) -> str:
    """Read request_id injected by RequestLogMiddleware, fallback if absent."""
    return getattr(request.state, "request_id", "req_unknown")


def _user_info(user: UserModel) -> UserInfo:
    return UserInfo(
        user_id=str(user.id),
        username=user.username,
        email=user.email,
        referral_code=user.referral_code,
        linked_wallet_address=user.linked_wallet_address,
    )


@router.post("/register", response_model=ApiResponse, summary="User registration")
async def register(
    request: Request,
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    user, referrer_id = await _service.register(
        db, body.username, body.email, body.password, body.referral_code
    )
    data = RegisterResponse(
        user_id=str(user.id),
        username=user.username,
        email=user.email,
        referral_code=user.referral_code,
        referred_by=referrer_id,
    )
    resp = success_response(data.to_wire())
    resp.request_id = _get_request_id(request)
    return resp


@router.post("/login", response_model=ApiResponse, summary="User login")
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    user, access_token, refresh_token = await _service.login(db, body.username, body.password)
    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=_user_info(user),
    )
    resp = success_response(data.to_wire())
    resp.request_id = _get_request_id(request)
    return resp


@router.post("/refresh", response_model=ApiResponse, summary="Refresh access token")
async def refresh_token(request: Request, body: RefreshRequest) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token)
    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    resp = success_response(data.to_wire())
    resp.request_id = _get_request_id(request)
    return resp


@router.post("/wallet", response_model=ApiResponse, summary="Link wallet address")
async def link_wallet(
    request: Request,
    body: LinkWalletRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    user = await _service.link_wallet(db, current_user, body.wallet_address)
    resp = success_response(_user_info(user).to_wire())
    resp.request_id = _get_request_id(request)
    return resp
