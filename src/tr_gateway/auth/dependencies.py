"""FastAPI dependencies: get_current_user, require_linked_wallet.

Usage in any protected router:
    from src.tr_gateway.auth.dependencies import require_linked_wallet

    @router.post("/open-trade")
    async def open_trade(user: UserModel = Depends(require_linked_wallet)):
        ...

Auth failures raise AppError subclasses, so they reach the client through the
standard envelope like every other application error.
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_common.database import get_db_session
from src.tr_common.errors import (
    AccountDisabledError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    WalletNotLinkedError,
)
from src.tr_gateway.auth.jwt_handler import decode_token
from src.tr_gateway.user.db_models import UserModel

# auto_error=False: a missing header becomes NotAuthenticatedError, not a bare 401
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Validate the Bearer token and return the UserModel."""
    if not token:
        raise NotAuthenticatedError()
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise NotAuthenticatedError() from None

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise NotAuthenticatedError()

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotAuthenticatedError()

    if not user.is_active:
        raise AccountDisabledError()

    return user


async def require_linked_wallet(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    """Anti-spam gate: trading and claiming need a linked wallet on file."""
    if not current_user.linked_wallet_address:
        raise WalletNotLinkedError()
    return current_user
