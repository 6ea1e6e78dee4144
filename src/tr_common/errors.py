"""Unified error codes and custom exceptions.

Every AppError is translated into the response envelope at the operation
boundary (HTTP 200, success=false). Nothing below escapes as an HTTP error.

Error code ranges:
  1xxx: Auth/User/Wallet
  2xxx: Trading (open/close)
  3xxx: Rewards, referrals, tasks
  9xxx: System
"""

from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        retryable: bool = False,
    ) -> None:
        self.code = code
        self.message = message
        self.retryable = retryable
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists")


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists")


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password")


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled")


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired")


class NotAuthenticatedError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Not authenticated. Please log in again.")


class WalletNotLinkedError(AppError):
    def __init__(self) -> None:
        super().__init__(
            1007, "No wallet linked to account. Please connect your wallet first."
        )


class InvalidWalletAddressError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(1008, f"Invalid wallet address: {address}")


class InvalidReferralCodeError(AppError):
    def __init__(self, code: str) -> None:
        super().__init__(1009, f"Unknown referral code: {code}")


# --- 2xxx: Trading ---

class TradeValidationError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(2001, message)


class InsufficientFundsError(AppError):
    def __init__(self, asset: str, required: Decimal, available: Decimal) -> None:
        self.asset = asset
        self.required = required
        self.available = available
        self.shortfall = required - available
        super().__init__(
            2002,
            f"Insufficient {asset} balance. Have {available:.2f}, need {required:.2f} "
            f"(short {self.shortfall:.2f}).",
        )


class RateLimitedError(AppError):
    def __init__(self, limit: int, window_seconds: int) -> None:
        super().__init__(
            2003,
            f"Rate limit: Maximum {limit} trades per {window_seconds} seconds. "
            "Please wait a moment.",
            retryable=True,
        )


class PriceUnavailableError(AppError):
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(
            2004, "Failed to fetch market price. Please try again.", retryable=True
        )


class PositionNotFoundError(AppError):
    def __init__(self, position_id: str) -> None:
        super().__init__(2005, f"Position not found: {position_id}")


# --- 3xxx: Rewards ---

class AlreadyClaimedError(AppError):
    def __init__(self, period: str) -> None:
        super().__init__(3001, f"Rewards for {period} have already been claimed")


class NotWithinClaimWindowError(AppError):
    def __init__(self, detail: str = "Not within claim window") -> None:
        super().__init__(3002, detail)


class NoRewardsAvailableError(AppError):
    def __init__(self, period: str) -> None:
        super().__init__(3003, f"No rewards available for {period}")


class ClaimNotFoundError(AppError):
    def __init__(self, claim_id: str) -> None:
        super().__init__(3004, f"Claim not found: {claim_id}")


class TaskNotFoundError(AppError):
    def __init__(self, task_id: str) -> None:
        super().__init__(3101, f"Task not found: {task_id}")


class TaskNotCompletedError(AppError):
    def __init__(self, task_id: str) -> None:
        super().__init__(3102, f"Task not completed: {task_id}")


class TaskAlreadyClaimedError(AppError):
    def __init__(self, task_id: str) -> None:
        super().__init__(3103, f"Task reward already claimed: {task_id}")


class MilestoneNotFoundError(AppError):
    def __init__(self, milestone_id: str) -> None:
        super().__init__(3104, f"Milestone not found: {milestone_id}")


class MilestoneNotReachedError(AppError):
    def __init__(self, milestone_id: str, target: Decimal, volume: Decimal) -> None:
        super().__init__(
            3105, f"Milestone {milestone_id} not reached: {volume} of {target} traded today"
        )


class MilestoneAlreadyClaimedError(AppError):
    def __init__(self, milestone_id: str) -> None:
        super().__init__(3106, f"Milestone {milestone_id} already claimed today")


class BonusAlreadyClaimedError(AppError):
    def __init__(self) -> None:
        super().__init__(3107, "Daily bonus already claimed")


# --- 9xxx: System ---

class TooManyRequestsError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Too many requests", retryable=True)


class StorageError(AppError):
    """Persistence failure. The message never carries driver details."""

    def __init__(self) -> None:
        super().__init__(9002, "Something went wrong. Please try again.", retryable=True)


class InternalError(AppError):
    def __init__(self, detail: str = "An unexpected error occurred. Please try again.") -> None:
        super().__init__(9003, detail)
