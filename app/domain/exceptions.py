"""Domain errors raised by the assignment engine."""


class AssignmentError(Exception):
    """Base class for assignment engine errors."""


class NoEligibleTeam(AssignmentError):
    """No active team with automatic assignment enabled can take the conversation."""


class NoAvailableAgent(AssignmentError):
    """A team was chosen but its roster has no active member."""

    def __init__(self, team_id: int, message: str | None = None):
        self.team_id = team_id
        super().__init__(message or f"Team {team_id} has no available agent")


class InvalidHandoffTarget(AssignmentError, ValueError):
    """The handoff target is missing or inconsistent."""


class ConversationNotFound(AssignmentError, LookupError):
    def __init__(self, conversation_id: int):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} not found")


class HandoffNotFound(AssignmentError, LookupError):
    def __init__(self, handoff_id: int):
        self.handoff_id = handoff_id
        super().__init__(f"Handoff {handoff_id} not found")


class HandoffAlreadyProcessed(AssignmentError):
    """The handoff is already terminal (or was superseded) and cannot change."""

    def __init__(self, handoff_id: int, status: str):
        self.handoff_id = handoff_id
        self.status = status
        super().__init__(f"Handoff {handoff_id} already processed (status={status})")


class ClassificationUnavailable(AssignmentError):
    """The upstream classifier failed or timed out."""


class TeamNotFound(AssignmentError, LookupError):
    def __init__(self, team_id: int):
        self.team_id = team_id
        super().__init__(f"Team {team_id} not found")
