from abc import ABC, abstractmethod

from threadline.core.modules.operation.models import Severity


class Notifier(ABC):
    """Fire-and-forget channel for alerts the user must see."""

    @abstractmethod
    def notify(self, message: str, severity: Severity = Severity.HIGH) -> None:
        """Deliver `message`; must not raise or block."""
