"""Global enums — values must match the DB CHECK constraints exactly.

Every string-typed status/role/type column in the schema has exactly one enum
here; transition tables live next to the aggregates that own them.
"""

from enum import Enum


class GameStatus(str, Enum):
    DRAFT = "draft"
    PRE_MARKET = "pre_market"
    OPEN = "open"
    CLOSED = "closed"
    RESULTS = "results"


class ParticipantRole(str, Enum):
    FOUNDER = "founder"
    ANGEL = "angel"
    VC = "vc"
    ORGANIZER = "organizer"


class ParticipantStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class FounderMemberRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELED = "canceled"
    EXPIRED = "expired"


class OrderDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class RejectReason(str, Enum):
    """Why a primary order ended up rejected or canceled by the system."""

    FOUNDER_REJECTED = "FOUNDER_REJECTED"
    INSUFFICIENT_SHARES = "INSUFFICIENT_SHARES"
    INSUFFICIENT_CASH = "INSUFFICIENT_CASH"
    BUYER_INACTIVE = "BUYER_INACTIVE"
    VENTURE_ORPHANED = "VENTURE_ORPHANED"
    BUYER_REMOVED = "BUYER_REMOVED"
    BUYER_IS_FOUNDER = "BUYER_IS_FOUNDER"


class MarketType(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class NotificationType(str, Enum):
    # Actionable (at most once)
    SECONDARY_TRADE_REQUEST = "secondary_trade_request"
    PARTICIPANT_APPROVAL_REQUEST = "participant_approval_request"
    # Informational
    PRIMARY_ORDER_RECEIVED = "primary_order_received"
    PRIMARY_ORDER_DECIDED = "primary_order_decided"
    SECONDARY_TRADE_ACCEPTED = "secondary_trade_accepted"
    SECONDARY_TRADE_REJECTED = "secondary_trade_rejected"
    PARTICIPANT_DECIDED = "participant_decided"
    VENTURE_OWNERSHIP_TRANSFERRED = "venture_ownership_transferred"


class NotificationStatus(str, Enum):
    UNREAD = "unread"
    READ = "read"
    REJECTED = "rejected"


class ParticipantDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class LedgerEntryType(str, Enum):
    PRIMARY_PURCHASE = "PRIMARY_PURCHASE"
    SECONDARY_PURCHASE = "SECONDARY_PURCHASE"
    SECONDARY_SALE = "SECONDARY_SALE"


class EventType(str, Enum):
    """Pub/sub event names consumed by the UI."""

    ORDER_CREATED = "ORDER_CREATED"
    ORDER_DECIDED = "ORDER_DECIDED"
    ORDER_CANCELED = "ORDER_CANCELED"
    ORDERS_EXPIRED = "ORDERS_EXPIRED"
    TRADE_SETTLED = "TRADE_SETTLED"
    NOTIFICATION_CREATED = "NOTIFICATION_CREATED"
    NOTIFICATION_UPDATED = "NOTIFICATION_UPDATED"
    CIRCUIT_BREAKER_TRIPPED = "CIRCUIT_BREAKER_TRIPPED"
    CIRCUIT_BREAKER_RESET = "CIRCUIT_BREAKER_RESET"
    GAME_STATUS_CHANGED = "GAME_STATUS_CHANGED"
    PARTICIPANT_UPDATED = "PARTICIPANT_UPDATED"


class EmailType(str, Enum):
    INVITE = "invite"
    MARKET_OPEN = "market_open"
    LAST_MINUTES = "last_minutes"
    RESULTS = "results"
    PARTICIPANT_REMOVED = "participant_removed"
    STATUS_CHANGE = "status_change"


class LeaderboardKind(str, Enum):
    STARTUPS = "startups"
    ANGELS = "angels"
    VCS = "vcs"
