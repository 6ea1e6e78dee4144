"""User domain service: register, login, refresh, link wallet.

register() seeds the balances row, records the welcome bonus and, when a
valid referral code is given, the referral link, all in the same transaction
as the user row.
"""

import logging
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tr_account.domain.repository import BalanceRepositoryProtocol
from src.tr_account.infrastructure.persistence import BalanceRepository
from src.tr_common.datetime_utils import utc_now
from src.tr_common.enums import BonusType
from src.tr_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidReferralCodeError,
    InvalidWalletAddressError,
    UsernameExistsError,
)
from src.tr_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.tr_gateway.auth.password import hash_password, verify_password
from src.tr_gateway.user.db_models import UserModel
from src.tr_gateway.user.schemas import WALLET_ADDRESS_PATTERN
from src.tr_referral.domain.repository import ReferralRepositoryProtocol
from src.tr_referral.infrastructure.persistence import ReferralRepository
from src.tr_tasks.domain.repository import BonusRepositoryProtocol
from src.tr_tasks.infrastructure.persistence import BonusRepository

logger = logging.getLogger("tr.gateway")


def generate_referral_code() -> str:
    """8 uppercase hex chars, e.g. '3FA09C1B'."""
    return secrets.token_hex(4).upper()


class UserService:
    """Stateless service: instantiate once, reuse across requests."""

    def __init__(
        self,
        balances: BalanceRepositoryProtocol | None = None,
        referrals: ReferralRepositoryProtocol | None = None,
        bonuses: BonusRepositoryProtocol | None = None,
    ) -> None:
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()
        self._referrals: ReferralRepositoryProtocol = referrals or ReferralRepository()
        self._bonuses: BonusRepositoryProtocol = bonuses or BonusRepository()

    async def register(
        self,
        db: AsyncSession,
        username: str,
        email: str,
        password: str,
        referral_code: str | None = None,
    ) -> tuple[UserModel, str | None]:
        """Returns (user, referrer_id or None)."""
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError()

        result = await db.execute(select(UserModel).where(UserModel.email == email))
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        referrer: UserModel | None = None
        if referral_code:
            result = await db.execute(
                select(UserModel).where(UserModel.referral_code == referral_code.upper())
            )
            referrer = result.scalar_one_or_none()
            if referrer is None:
                raise InvalidReferralCodeError(referral_code)

        try:
            user = UserModel(
                username=username,
                email=email,
                password_hash=hash_password(password),
                is_active=True,
                referral_code=generate_referral_code(),
            )
            db.add(user)
            await db.flush()  # assigns user.id

            await self._balances.create_balance(
                db, str(user.id), settings.STARTING_DEMO_USDT, settings.WELCOME_OIL
            )
            if settings.WELCOME_OIL > 0:
                await self._bonuses.insert_claim(
                    db, str(user.id), BonusType.WELCOME_OIL, utc_now().date(),
                    settings.WELCOME_OIL,
                )
            if referrer is not None:
                await self._referrals.create_referral(db, str(referrer.id), str(user.id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Registered user %s (%s)%s",
            user.id, username, f", referred by {referrer.id}" if referrer else "",
        )
        return user, str(referrer.id) if referrer else None

    async def login(
        self,
        db: AsyncSession,
        username: str,
        password: str,
    ) -> tuple[UserModel, str, str]:
        """Returns (user, access_token, refresh_token).

        Unknown user and wrong password raise the same error.
        """
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDisabledError()

        return user, create_access_token(str(user.id)), create_refresh_token(str(user.id))

    async def refresh(self, refresh_token: str) -> str:
        payload = decode_token(refresh_token, expected_type="refresh")
        return create_access_token(str(payload["sub"]))

    async def link_wallet(
        self, db: AsyncSession, user: UserModel, wallet_address: str
    ) -> UserModel:
        """Store an EVM-format address. Ownership is not verified."""
        if not WALLET_ADDRESS_PATTERN.match(wallet_address):
            raise InvalidWalletAddressError(wallet_address)
        try:
            user.linked_wallet_address = wallet_address
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("User %s linked wallet %s", user.id, wallet_address)
        return user
