"""Classification value object — the upstream intent/urgency signal for a conversation."""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.value_objects.enums import Urgency


@dataclass(frozen=True)
class Classification:
    """Opaque classifier output; only the named fields are consumed.

    Attributes:
        intent: free-form intent label, e.g. "billing_inquiry".
        urgency: urgency bucket reported by the classifier.
        frustration_level: 0-10, 10 = most frustrated.
        confidence: 0-100, classifier confidence in the intent.
        suggested_team: optional team-type hint from the classifier.
    """

    intent: str
    urgency: Urgency = Urgency.NORMAL
    frustration_level: int = 0
    confidence: float = 50.0
    suggested_team: str | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.frustration_level <= 10:
            raise ValueError(
                f"frustration_level must be within 0..10, got {self.frustration_level}"
            )
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"confidence must be within 0..100, got {self.confidence}")

    def is_urgent(self) -> bool:
        return self.urgency in (Urgency.HIGH, Urgency.CRITICAL)

    def to_dict(self) -> dict:
        return {
            "intent": self.intent,
            "urgency": self.urgency.value,
            "frustration_level": self.frustration_level,
            "confidence": self.confidence,
            "suggested_team": self.suggested_team,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Classification:
        return cls(
            intent=data["intent"],
            urgency=Urgency(data.get("urgency", Urgency.NORMAL.value)),
            frustration_level=int(data.get("frustration_level", 0)),
            confidence=float(data.get("confidence", 50.0)),
            suggested_team=data.get("suggested_team"),
        )
