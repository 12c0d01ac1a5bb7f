"""Port interface for the upstream conversation classifier."""

from abc import ABC, abstractmethod

from app.domain.value_objects.classification import Classification


class ClassifierPort(ABC):
    @abstractmethod
    async def classify(self, conversation_id: int, message_text: str) -> Classification:
        """Classify the latest message of a conversation.

        Raises:
            ClassificationUnavailable: when the classifier fails or times out.
        """
        ...
