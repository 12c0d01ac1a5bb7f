"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class TeamType(str, Enum):
    COMMERCIAL = "commercial"
    SUPPORT = "support"
    FINANCE = "finance"
    TUTORING = "tutoring"
    REGISTRAR = "registrar"


class AgentRole(str, Enum):
    AGENT = "agent"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
    ADMIN = "admin"


class ConversationStatus(str, Enum):
    OPEN = "open"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"


# Statuses that count towards team and agent load
ACTIVE_CONVERSATION_STATUSES = (ConversationStatus.OPEN, ConversationStatus.PENDING)


class AssignmentMethod(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    AUTOMATIC_EQUITABLE = "automatic_equitable"


class ConversationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """0 = most urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    ConversationPriority.URGENT: 0,
    ConversationPriority.HIGH: 1,
    ConversationPriority.NORMAL: 2,
    ConversationPriority.LOW: 3,
}


class Urgency(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class HandoffType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    ESCALATION = "escalation"


class HandoffStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (HandoffStatus.REJECTED, HandoffStatus.COMPLETED)


class EquityLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"
