"""tr_tasks REST API: daily tasks, volume milestones, Oil bonuses."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.database import get_db_session
from src.tr_common.response import ApiResponse, success_response
from src.tr_gateway.auth.dependencies import get_current_user
from src.tr_gateway.user.db_models import UserModel
from src.tr_tasks.application.bonus_service import BonusService
from src.tr_tasks.application.milestone_service import MilestoneService
from src.tr_tasks.application.service import TaskService

router = APIRouter(tags=["tasks"])

_service = TaskService()
_milestones = MilestoneService()
_bonuses = BonusService()


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/tasks")
async def list_tasks(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_tasks(db, str(current_user.id))
    return _respond(request, data.to_wire())


@router.post("/tasks/{task_id}/claim")
async def claim_task(
    task_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.claim(db, str(current_user.id), task_id)
    return _respond(request, data.to_wire())


@router.get("/milestones")
async def list_milestones(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _milestones.list_milestones(db, str(current_user.id))
    return _respond(request, data.to_wire())


@router.post("/milestones/{milestone_id}/claim")
async def claim_milestone(
    milestone_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _milestones.claim(db, str(current_user.id), milestone_id)
    return _respond(request, data.to_wire())


@router.get("/bonuses/daily")
async def daily_bonus_status(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _bonuses.daily_status(db, str(current_user.id))
    return _respond(request, data.to_wire())


@router.post("/bonuses/daily/claim")
async def claim_daily_bonus(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _bonuses.claim_daily(db, str(current_user.id))
    return _respond(request, data.to_wire())


@router.get("/bonuses/welcome")
async def welcome_bonus(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _bonuses.welcome_status(db, str(current_user.id))
    return _respond(request, data.to_wire())
