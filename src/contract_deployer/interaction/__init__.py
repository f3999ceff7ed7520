"""Operator interaction module."""

from .handler import (
    UserInteractionHandler,
    InteractionRequest,
    InteractionResponse,
    CLIInteractionHandler,
    CallbackInteractionHandler,
    AutoResponseHandler,
    InputType,
    QuestionCategory,
    parse_multi_choice,
)

__all__ = [
    "UserInteractionHandler",
    "InteractionRequest",
    "InteractionResponse",
    "CLIInteractionHandler",
    "CallbackInteractionHandler",
    "AutoResponseHandler",
    "InputType",
    "QuestionCategory",
    "parse_multi_choice",
]
