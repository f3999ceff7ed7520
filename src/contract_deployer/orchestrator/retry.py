"""Operator-gated retry policies.

The orchestrator never retries on its own: after every failed attempt it asks the
policy whether to go again. There is no attempt cap and no backoff at this layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable, List

if TYPE_CHECKING:
    from ..interaction import UserInteractionHandler


class RetryPolicy(ABC):
    """Decides whether a failed operation should be attempted again."""

    @abstractmethod
    def should_retry(self, subject: str, error: Exception, attempt: int) -> bool:
        """
        Args:
            subject: Human-readable name of what failed (step or sub-flow)
            error: The failure of the latest attempt
            attempt: Number of attempts made so far (1 after the first failure)
        """


class InteractiveRetryPolicy(RetryPolicy):
    """Asks the operator after every failure."""

    def __init__(self, interaction_handler: "UserInteractionHandler") -> None:
        self.interaction_handler = interaction_handler

    def should_retry(self, subject: str, error: Exception, attempt: int) -> bool:
        from ..interaction import QuestionCategory

        return self.interaction_handler.confirm(
            f"{subject} failed (attempt {attempt}). Retry?",
            category=QuestionCategory.ERROR_RECOVERY,
            default="y",
        )


class ScriptedRetryPolicy(RetryPolicy):
    """Replays a fixed sequence of decisions; answers "no" once it runs out."""

    def __init__(self, decisions: Iterable[bool]) -> None:
        self._decisions: List[bool] = list(decisions)
        self.asked: List[str] = []

    def should_retry(self, subject: str, error: Exception, attempt: int) -> bool:
        self.asked.append(subject)
        if not self._decisions:
            return False
        return self._decisions.pop(0)

