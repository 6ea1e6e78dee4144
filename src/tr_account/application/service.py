"""AccountApplicationService: read side of the balances table."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.tr_account.application.schemas import BalanceResponse
from src.tr_account.domain.repository import BalanceRepositoryProtocol
from src.tr_account.infrastructure.persistence import BalanceRepository
from src.tr_common.errors import InternalError


class AccountApplicationService:
    def __init__(self, repo: BalanceRepositoryProtocol | None = None) -> None:
        self._repo: BalanceRepositoryProtocol = repo or BalanceRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        balance = await self._repo.get_balance(db, user_id)
        if balance is None:
            raise InternalError(f"Balance not found for user {user_id}")
        return BalanceResponse.from_balance(balance)
