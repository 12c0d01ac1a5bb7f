"""Request bodies shared by the routers."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import Urgency


class ClassificationIn(BaseModel):
    intent: str
    urgency: Urgency = Urgency.NORMAL
    frustration_level: int = Field(default=0, ge=0, le=10)
    confidence: float = Field(default=50.0, ge=0, le=100)
    suggested_team: str | None = None

    def to_domain(self) -> Classification:
        return Classification(
            intent=self.intent,
            urgency=self.urgency,
            frustration_level=self.frustration_level,
            confidence=self.confidence,
            suggested_team=self.suggested_team,
        )
