"""Shared helpers for the integration suite."""

import uuid
from decimal import Decimal

from httpx import AsyncClient


class FixedOracle:
    def __init__(self, price: Decimal) -> None:
        self.price = price

    async def get_price(self, symbol: str) -> Decimal:
        return self.price


ORACLE = FixedOracle(Decimal("100"))


def unique_user() -> dict[str, str]:
    uid = uuid.uuid4().hex[:8]
    return {
        "username": f"it_{uid}",
        "email": f"it_{uid}@example.com",
        "password": "TestPass1",
    }


def fresh_ip() -> dict[str, str]:
    """A distinct client address per call keeps the auth rate limiter out of the way."""
    return {"X-Forwarded-For": f"10.{uuid.uuid4().int % 250}.{uuid.uuid4().int % 250}.1"}


async def register_and_login(
    client: AsyncClient, referral_code: str | None = None, wallet: bool = True
) -> tuple[dict[str, str], dict]:
    """Register a fresh user, log in, optionally link a wallet.

    Returns (auth headers, register payload).
    """
    user = unique_user()
    body = {**user, "referralCode": referral_code} if referral_code else user
    reg = await client.post("/api/v1/auth/register", json=body, headers=fresh_ip())
    login = await client.post(
        "/api/v1/auth/login",
        json={"username": user["username"], "password": user["password"]},
        headers=fresh_ip(),
    )
    headers = {"Authorization": f"Bearer {login.json()['data']['accessToken']}"}
    if wallet:
        address = "0x" + uuid.uuid4().hex + uuid.uuid4().hex[:8]
        await client.post(
            "/api/v1/auth/wallet",
            json={"walletAddress": address},
            headers={**headers, **fresh_ip()},
        )
    return headers, reg.json()["data"]
