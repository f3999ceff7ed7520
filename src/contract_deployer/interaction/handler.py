"""Operator interaction handlers for the deployment orchestrator."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt

logger = logging.getLogger(__name__)


class InputType(str, Enum):
    """Type of operator input expected."""
    CHOICE = "choice"               # 单选
    MULTI_CHOICE = "multi_choice"   # 多选（可为空）
    TEXT = "text"                   # 自由文本输入
    CONFIRM = "confirm"             # 是/否确认


class QuestionCategory(str, Enum):
    """Category of questions for context."""
    DECISION = "decision"              # 策略/模式选择
    CONFIRMATION = "confirmation"      # 部署前确认
    INFORMATION = "information"        # 构造参数等额外信息
    ERROR_RECOVERY = "error_recovery"  # 失败后是否重试


@dataclass
class InteractionRequest:
    """A request from the orchestrator to the operator."""

    question: str
    input_type: InputType = InputType.CHOICE
    options: List[str] = field(default_factory=list)
    category: QuestionCategory = QuestionCategory.DECISION
    context: Optional[str] = None
    default: Optional[str] = None

    def format_prompt(self) -> str:
        """Format the request as an operator-friendly prompt."""
        icons = {
            QuestionCategory.DECISION: "🤔",
            QuestionCategory.CONFIRMATION: "⚠️",
            QuestionCategory.INFORMATION: "📝",
            QuestionCategory.ERROR_RECOVERY: "🔧",
        }
        icon = icons.get(self.category, "❓")

        lines = [f"\n{icon} {self.question}"]
        if self.context:
            lines.append(f"   ℹ️  {self.context}")

        if self.input_type in (InputType.CHOICE, InputType.MULTI_CHOICE) and self.options:
            for i, option in enumerate(self.options, 1):
                default_marker = " (default)" if self.default == option else ""
                lines.append(f"   [{i}] {option}{default_marker}")
            if self.input_type == InputType.MULTI_CHOICE:
                lines.append("   💡 Enter numbers separated by commas, or leave empty for none")

        return "\n".join(lines)


@dataclass
class InteractionResponse:
    """Operator's response to an interaction request."""

    value: str
    selected_option: Optional[int] = None                     # 1-based
    selected_options: List[int] = field(default_factory=list)  # 1-based, MULTI_CHOICE
    cancelled: bool = False

    @property
    def confirmed(self) -> bool:
        return not self.cancelled and self.value.lower() in ("yes", "y", "true")

    @classmethod
    def from_choice(cls, option_index: int, options: List[str]) -> "InteractionResponse":
        """Create response from a choice selection."""
        if 1 <= option_index <= len(options):
            return cls(value=options[option_index - 1], selected_option=option_index)
        raise ValueError(f"Invalid option index: {option_index}")

    @classmethod
    def from_choices(cls, option_indexes: List[int], options: List[str]) -> "InteractionResponse":
        """Create response from a multi-choice selection (duplicates dropped, order kept)."""
        picked: List[int] = []
        for index in option_indexes:
            if not 1 <= index <= len(options):
                raise ValueError(f"Invalid option index: {index}")
            if index not in picked:
                picked.append(index)
        return cls(
            value=", ".join(options[i - 1] for i in picked),
            selected_options=picked,
        )

    @classmethod
    def cancelled_response(cls) -> "InteractionResponse":
        """Create a cancelled response."""
        return cls(value="", cancelled=True)


def parse_multi_choice(raw: str, option_count: int) -> List[int]:
    """Parse "1, 3" style input into 1-based indexes; raises ValueError on bad input."""
    indexes = []
    for token in raw.replace(" ", "").split(","):
        if not token:
            continue
        index = int(token)
        if not 1 <= index <= option_count:
            raise ValueError(f"Option {index} is out of range 1-{option_count}")
        indexes.append(index)
    return indexes


class UserInteractionHandler(ABC):
    """Abstract base class for handling operator interactions."""

    @abstractmethod
    def ask(self, request: InteractionRequest) -> InteractionResponse:
        """
        Present a request to the operator and get their response.

        Args:
            request: The interaction request to present

        Returns:
            The operator's response
        """

    @abstractmethod
    def notify(self, message: str, level: str = "info") -> None:
        """
        Send a notification to the operator (no response needed).

        Args:
            message: The message to display
            level: Severity level (info, warning, error, success)
        """

    def confirm(
        self,
        question: str,
        category: QuestionCategory = QuestionCategory.CONFIRMATION,
        default: str = "n",
    ) -> bool:
        """Ask a yes/no question; a cancelled prompt counts as "no"."""
        response = self.ask(
            InteractionRequest(
                question=question,
                input_type=InputType.CONFIRM,
                category=category,
                default=default,
            )
        )
        return response.confirmed


class CLIInteractionHandler(UserInteractionHandler):
    """Terminal interaction handler built on rich prompts."""

    def __init__(self, use_rich: bool = True, console: Optional[Console] = None) -> None:
        """
        Initialize the CLI handler.

        Args:
            use_rich: Whether to render colours and markup
            console: Console to use (mainly for tests capturing output)
        """
        self.use_rich = use_rich
        self.console = console or Console(
            color_system="auto" if use_rich else None,
            highlight=use_rich,
        )

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        """Present request and get operator input via the terminal."""
        self.console.print(request.format_prompt(), markup=False)

        try:
            if request.input_type == InputType.CHOICE:
                return self._handle_choice(request)
            if request.input_type == InputType.MULTI_CHOICE:
                return self._handle_multi_choice(request)
            if request.input_type == InputType.CONFIRM:
                return self._handle_confirm(request)
            return self._handle_text(request)
        except KeyboardInterrupt:
            self.console.print("\n   (cancelled)")
            return InteractionResponse.cancelled_response()
        except EOFError:
            return InteractionResponse.cancelled_response()

    def _handle_choice(self, request: InteractionRequest) -> InteractionResponse:
        choices = [str(i) for i in range(1, len(request.options) + 1)]
        default = ...
        if request.default in request.options:
            default = str(request.options.index(request.default) + 1)
        answer = Prompt.ask("   Select", choices=choices, default=default, console=self.console)
        return InteractionResponse.from_choice(int(answer), request.options)

    def _handle_multi_choice(self, request: InteractionRequest) -> InteractionResponse:
        while True:
            raw = Prompt.ask("   Select", default="", show_default=False, console=self.console)
            try:
                indexes = parse_multi_choice(raw, len(request.options))
            except ValueError as exc:
                self.console.print(f"   ❌ {exc}", markup=False)
                continue
            return InteractionResponse.from_choices(indexes, request.options)

    def _handle_confirm(self, request: InteractionRequest) -> InteractionResponse:
        default = (request.default or "n").lower() in ("y", "yes")
        answer = Confirm.ask("   Confirm?", default=default, console=self.console)
        return InteractionResponse(value="yes" if answer else "no")

    def _handle_text(self, request: InteractionRequest) -> InteractionResponse:
        while True:
            answer = Prompt.ask(
                "   Enter value",
                default=request.default if request.default else ...,
                console=self.console,
            )
            if answer and answer.strip():
                return InteractionResponse(value=answer.strip())
            self.console.print("   ⚠️  A value is required")

    def notify(self, message: str, level: str = "info") -> None:
        """Display a notification message."""
        icons = {
            "info": "ℹ️",
            "warning": "⚠️",
            "error": "❌",
            "success": "✅",
        }
        icon = icons.get(level, "•")
        self.console.print(f"\n{icon} {message}", markup=False)


class CallbackInteractionHandler(UserInteractionHandler):
    """
    Interaction handler that uses callbacks.
    Useful for embedding the orchestrator or scripting operator answers.
    """

    def __init__(
        self,
        ask_callback: Callable[[InteractionRequest], InteractionResponse],
        notify_callback: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.ask_callback = ask_callback
        self.notify_callback = notify_callback or (lambda msg, lvl: logger.info(f"[{lvl}] {msg}"))

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        return self.ask_callback(request)

    def notify(self, message: str, level: str = "info") -> None:
        self.notify_callback(message, level)


class AutoResponseHandler(UserInteractionHandler):
    """
    Automatic response handler.
    Answers from predefined keyword responses, then defaults, then by input type.
    """

    def __init__(
        self,
        default_responses: Optional[dict] = None,
        always_confirm: bool = True,
        use_defaults: bool = True,
    ) -> None:
        """
        Args:
            default_responses: Dict mapping question keywords to responses
            always_confirm: Whether to auto-confirm (True) or reject (False)
            use_defaults: Whether to use default values when available
        """
        self.default_responses = default_responses or {}
        self.always_confirm = always_confirm
        self.use_defaults = use_defaults
        self.questions: List[str] = []

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        logger.debug(f"Auto-responding to: {request.question[:60]}")
        self.questions.append(request.question)

        for keyword, response in self.default_responses.items():
            if keyword.lower() in request.question.lower():
                if request.input_type == InputType.MULTI_CHOICE:
                    return InteractionResponse.from_choices(
                        parse_multi_choice(response, len(request.options)), request.options
                    )
                if request.input_type == InputType.CHOICE and response in request.options:
                    return InteractionResponse.from_choice(
                        request.options.index(response) + 1, request.options
                    )
                return InteractionResponse(value=response)

        if request.input_type == InputType.CONFIRM:
            return InteractionResponse(value="yes" if self.always_confirm else "no")
        if request.input_type == InputType.MULTI_CHOICE:
            return InteractionResponse.from_choices([], request.options)
        if request.input_type == InputType.CHOICE and request.options:
            if self.use_defaults and request.default in request.options:
                return InteractionResponse.from_choice(
                    request.options.index(request.default) + 1, request.options
                )
            return InteractionResponse.from_choice(1, request.options)
        if self.use_defaults and request.default:
            return InteractionResponse(value=request.default)
        return InteractionResponse(value="")

    def notify(self, message: str, level: str = "info") -> None:
        logger.info(f"[{level}] {message}")
