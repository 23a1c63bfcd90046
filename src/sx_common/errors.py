"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Identity
  2xxx: Cash / ledger
  3xxx: Game / market
  4xxx: Primary orders
  5xxx: Positions
  6xxx: Secondary trades / notifications
  7xxx: Ventures / participants
  9xxx: System

Every error also carries a category. Expected business outcomes are
VALIDATION, CONFLICT or NOT_FOUND and are returned as Err results by the
services; SYSTEM errors propagate.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    SYSTEM = "SYSTEM"


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        category: ErrorCategory = ErrorCategory.SYSTEM,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.category = category
        super().__init__(message)


class ValidationError(AppError):
    """Client-correctable: surfaced immediately, never retried."""

    def __init__(self, code: int, message: str, http_status: int = 422) -> None:
        super().__init__(code, message, http_status, ErrorCategory.VALIDATION)


class ConflictError(AppError):
    """The entity was already handled by someone else."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 409, ErrorCategory.CONFLICT)


class NotFoundError(AppError):
    """Missing, or not addressed to the caller. Never say which."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 404, ErrorCategory.NOT_FOUND)


# --- 1xxx: Identity ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401, ErrorCategory.VALIDATION)


# --- 2xxx: Cash ---

class InsufficientBalanceError(ValidationError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient cash: required {required} cents, available {available} cents",
        )


# --- 3xxx: Game / market ---

class GameNotFoundError(NotFoundError):
    def __init__(self, game_id: str) -> None:
        super().__init__(3001, f"Game not found: {game_id}")


class GameNotOpenError(ValidationError):
    def __init__(self, game_id: str, status: str) -> None:
        super().__init__(3002, f"Game {game_id} is not open for trading (status={status})")


class MarketPausedError(ValidationError):
    def __init__(self, game_id: str, until: str | None) -> None:
        super().__init__(3003, f"Market paused by circuit breaker for game {game_id} until {until}")


class InvalidStatusTransitionError(ValidationError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(3004, f"Game cannot move from {current} to {target}")


class SecondaryMarketDisabledError(ValidationError):
    def __init__(self, game_id: str) -> None:
        super().__init__(3005, f"Secondary market is disabled for game {game_id}")


class GameStatusConflictError(ConflictError):
    def __init__(self, game_id: str) -> None:
        super().__init__(3006, f"Game {game_id} status was changed concurrently")


# --- 4xxx: Primary orders ---

class PriceOutOfRangeError(ValidationError):
    def __init__(self, price: int, maximum: int) -> None:
        super().__init__(4001, f"Price {price} out of range [1, {maximum}]")


class QuantityOutOfRangeError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, f"Quantity out of range: {detail}")


class SelfTradeError(ValidationError):
    def __init__(self) -> None:
        super().__init__(4003, "Self-trade prevented")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}")


class AlreadyDecidedError(ConflictError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(4005, f"Order {order_id} was already handled (status={status})")


class OrderRevalidationFailedError(ConflictError):
    def __init__(self, order_id: str, reason: str) -> None:
        super().__init__(4006, f"Order {order_id} rejected on re-validation: {reason}")
        self.reason = reason


# --- 5xxx: Position ---

class InsufficientPositionError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Insufficient shares: {detail}")


# --- 6xxx: Secondary trades / notifications ---

class NotificationNotFoundError(NotFoundError):
    def __init__(self, notification_id: str) -> None:
        super().__init__(6001, f"Notification not found: {notification_id}")


class AlreadyConsumedError(ConflictError):
    def __init__(self, notification_id: str, status: str) -> None:
        super().__init__(
            6002, f"Notification {notification_id} was already handled (status={status})"
        )


class BuyerNotFoundError(NotFoundError):
    def __init__(self, identifier: str) -> None:
        super().__init__(6003, f"Buyer not found in this game: {identifier}")


class TradeRevalidationFailedError(ConflictError):
    def __init__(self, notification_id: str, reason: str) -> None:
        super().__init__(
            6004, f"Trade request {notification_id} is no longer valid: {reason}"
        )
        self.reason = reason


# --- 7xxx: Ventures / participants ---

class VentureNotFoundError(NotFoundError):
    def __init__(self, venture_id: str) -> None:
        super().__init__(7001, f"Venture not found: {venture_id}")


class VentureOrphanedError(ValidationError):
    def __init__(self, venture_id: str) -> None:
        super().__init__(7002, f"Venture {venture_id} has no founders and cannot take orders")


class ParticipantNotFoundError(NotFoundError):
    def __init__(self, participant_id: str) -> None:
        super().__init__(7003, f"Participant not found: {participant_id}")


class ParticipantInactiveError(ValidationError):
    def __init__(self, participant_id: str, status: str) -> None:
        super().__init__(7004, f"Participant {participant_id} is {status}, not active")


class AlreadyParticipantError(ConflictError):
    def __init__(self, game_id: str) -> None:
        super().__init__(7005, f"Already a participant of game {game_id}")


class InvalidSharesError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(7006, f"Invalid share count: {detail}")


class RoleNotAllowedError(ValidationError):
    def __init__(self, role: str, action: str) -> None:
        super().__init__(7007, f"Role {role} may not {action}")


class AlreadyFounderError(ConflictError):
    def __init__(self, venture_id: str, participant_id: str) -> None:
        super().__init__(7008, f"Participant {participant_id} is already a founder of {venture_id}")


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500, ErrorCategory.SYSTEM)
