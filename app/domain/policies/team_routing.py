"""TeamRoutingPolicy — maps a classification to a team with a confidence score.

Pure functions only; the application-level TeamRouter feeds them a capacity
snapshot and runs the agent selector on the winner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from app.domain.value_objects.capacity import TeamCapacity
from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import ConversationPriority, TeamType, Urgency

DEFAULT_INTENT_TEAM_TYPES: Mapping[str, TeamType] = MappingProxyType({
    # Commercial: sales and leads
    "lead_generation": TeamType.COMMERCIAL,
    "sales_interest": TeamType.COMMERCIAL,
    "sales_inquiry": TeamType.COMMERCIAL,
    "course_inquiry": TeamType.COMMERCIAL,
    "course_information": TeamType.COMMERCIAL,
    "pricing_question": TeamType.COMMERCIAL,
    "enrollment_interest": TeamType.COMMERCIAL,
    # Finance: payments and billing
    "billing_inquiry": TeamType.FINANCE,
    "billing_issue": TeamType.FINANCE,
    "payment_issue": TeamType.FINANCE,
    "invoice_request": TeamType.FINANCE,
    # Support: technical problems and complaints
    "technical_support": TeamType.SUPPORT,
    "platform_issue": TeamType.SUPPORT,
    "login_problem": TeamType.SUPPORT,
    "complaint": TeamType.SUPPORT,
    "service_complaint": TeamType.SUPPORT,
    # Tutoring: enrolled students
    "student_support": TeamType.TUTORING,
    "course_question": TeamType.TUTORING,
    "academic_support": TeamType.TUTORING,
    # Registrar: administrative processes
    "schedule_request": TeamType.REGISTRAR,
    "document_request": TeamType.REGISTRAR,
    "general_info": TeamType.REGISTRAR,
    "enrollment": TeamType.REGISTRAR,
})


@dataclass(frozen=True)
class RoutingTable:
    """The single source of intent → team-type routing rules.

    ``version`` is stamped on every routing decision so audits can tell
    which table produced it.
    """

    version: str = "2025.1"
    intent_team_types: Mapping[str, TeamType] = field(
        default_factory=lambda: DEFAULT_INTENT_TEAM_TYPES
    )
    fallback_team_type: TeamType = TeamType.COMMERCIAL
    overload_threshold: float = 80.0
    mismatch_penalty: float = 0.7
    low_utilization: float = 50.0
    max_alternatives: int = 2
    alternative_utilization_cap: float = 90.0
    fallback_confidence: float = 50.0

    def __post_init__(self) -> None:
        if not 0 < self.overload_threshold <= 100:
            raise ValueError(f"overload_threshold out of range: {self.overload_threshold}")
        if not 0 <= self.mismatch_penalty <= 1:
            raise ValueError(f"mismatch_penalty out of range: {self.mismatch_penalty}")
        if self.max_alternatives < 0:
            raise ValueError(f"max_alternatives must be >= 0, got {self.max_alternatives}")

    def preferred_team_type(self, classification: Classification) -> tuple[TeamType, bool]:
        """Return (team type, whether it came from the table or the hint)."""
        mapped = self.intent_team_types.get(classification.intent)
        if mapped is not None:
            return mapped, True
        hint = _parse_team_type(classification.suggested_team)
        if hint is not None:
            return hint, True
        return self.fallback_team_type, False

    def specializes(self, team_type: TeamType, intent: str) -> bool:
        return self.intent_team_types.get(intent) == team_type


def _parse_team_type(value: str | None) -> TeamType | None:
    if not value:
        return None
    try:
        return TeamType(value.strip().lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class TeamChoice:
    capacity: TeamCapacity
    preferred_type: TeamType
    matched_preferred: bool  # False when routing widened to another team type


@dataclass(frozen=True)
class AlternativeTeam:
    team_id: int
    team_name: str
    team_type: TeamType
    utilization_rate: float
    confidence: float
    reason: str


def derive_priority(classification: Classification) -> ConversationPriority:
    """critical/frustration>=8 → urgent; high/frustration>=6 → high; calm low-urgency → low."""
    frustration = classification.frustration_level
    if classification.urgency == Urgency.CRITICAL or frustration >= 8:
        return ConversationPriority.URGENT
    if classification.urgency == Urgency.HIGH or frustration >= 6:
        return ConversationPriority.HIGH
    # A calm customer only drops to low when the classifier also reports low urgency
    if frustration <= 2 and classification.urgency == Urgency.LOW:
        return ConversationPriority.LOW
    return ConversationPriority.NORMAL


def clamp_confidence(value: float) -> float:
    return max(0.0, min(100.0, value))


def compute_confidence(
    classification: Classification,
    team: TeamCapacity,
    table: RoutingTable,
) -> float:
    """Classifier confidence adjusted for team fit, load and urgency; clamped to 0..100."""
    specialized = table.specializes(team.team_type, classification.intent)
    confidence = float(classification.confidence)

    if specialized:
        confidence += 30
    if team.utilization_rate < table.low_utilization:
        confidence += 15
    elif team.utilization_rate < table.overload_threshold:
        confidence += 5
    if classification.is_urgent():
        confidence += 10
    if classification.frustration_level > 7 and not specialized:
        confidence -= 20

    return clamp_confidence(confidence)


def estimate_wait_minutes(team: TeamCapacity) -> int:
    if team.utilization_rate < 30:
        return 2
    if team.utilization_rate < 70:
        return 5
    return min(15, team.active_agents * 2)


def _least_utilized(
    teams: list[TeamCapacity],
    prefer_team_id: int | None = None,
) -> TeamCapacity:
    """Lowest utilization, then the current team, then higher priority, then lower id."""
    return min(
        teams,
        key=lambda t: (t.utilization_rate, t.team_id != prefer_team_id, -t.priority, t.team_id),
    )


def choose_team(
    classification: Classification,
    capacities: list[TeamCapacity],
    table: RoutingTable,
    current_team_id: int | None = None,
) -> TeamChoice | None:
    """Pick the best eligible team for the classification, or None.

    Teams of the preferred type under the overload threshold win; otherwise
    routing widens to any eligible team (under the threshold when possible).
    """
    preferred_type, _ = table.preferred_team_type(classification)
    eligible = [c for c in capacities if c.is_eligible]
    if not eligible:
        return None

    specialized = [
        c for c in eligible
        if c.team_type == preferred_type and c.utilization_rate < table.overload_threshold
    ]
    if specialized:
        return TeamChoice(
            capacity=_least_utilized(specialized, current_team_id),
            preferred_type=preferred_type,
            matched_preferred=True,
        )

    not_overloaded = [c for c in eligible if c.utilization_rate < table.overload_threshold]
    widened = not_overloaded or eligible
    return TeamChoice(
        capacity=_least_utilized(widened, current_team_id),
        preferred_type=preferred_type,
        matched_preferred=False,
    )


def choose_fallback_team(capacities: list[TeamCapacity]) -> TeamCapacity | None:
    """Least-utilized eligible team, ignoring specialization entirely."""
    eligible = [c for c in capacities if c.is_eligible]
    if not eligible:
        return None
    return _least_utilized(eligible)


def recommendation_confidence(
    classification: Classification,
    choice: TeamChoice,
    table: RoutingTable,
) -> float:
    confidence = compute_confidence(classification, choice.capacity, table)
    if not choice.matched_preferred:
        confidence *= table.mismatch_penalty
    return round(clamp_confidence(confidence), 2)


def list_alternatives(
    classification: Classification | None,
    capacities: list[TeamCapacity],
    chosen_team_id: int,
    table: RoutingTable,
) -> list[AlternativeTeam]:
    """Up to ``max_alternatives`` other eligible teams below the utilization cap, lowest first."""
    others = sorted(
        (
            c for c in capacities
            if c.is_eligible
            and c.team_id != chosen_team_id
            and c.utilization_rate < table.alternative_utilization_cap
        ),
        key=lambda t: (t.utilization_rate, -t.priority, t.team_id),
    )
    alternatives = []
    for team in others[: table.max_alternatives]:
        if classification is None:
            confidence = clamp_confidence(table.fallback_confidence - team.utilization_rate / 2)
        else:
            confidence = compute_confidence(classification, team, table)
        alternatives.append(
            AlternativeTeam(
                team_id=team.team_id,
                team_name=team.team_name,
                team_type=team.team_type,
                utilization_rate=round(team.utilization_rate, 2),
                confidence=round(confidence, 2),
                reason=f"{team.team_name} - {round(team.utilization_rate)}% utilization",
            )
        )
    return alternatives


def describe_choice(classification: Classification, choice: TeamChoice) -> str:
    team = choice.capacity
    utilization = round(team.utilization_rate)
    if choice.matched_preferred:
        return (
            f"Routed to {team.team_name} ({team.team_type.value}) for intent "
            f"'{classification.intent}' at {utilization}% utilization"
        )
    return (
        f"No available {choice.preferred_type.value} team for intent "
        f"'{classification.intent}'; widened to {team.team_name} "
        f"({team.team_type.value}) at {utilization}% utilization"
    )
