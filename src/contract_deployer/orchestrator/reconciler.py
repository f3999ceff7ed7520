"""Resume Reconciler: decides what to do with progress left by an earlier run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List

from .models import DeploymentState, ResumeStrategy, StepStatus
from .state_store import DeploymentStateStore

if TYPE_CHECKING:
    from ..interaction import UserInteractionHandler

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    """State to continue with, plus the identifiers carried over from earlier runs."""
    state: DeploymentState
    strategy: ResumeStrategy
    identifiers: Dict[str, str] = field(default_factory=dict)
    reset_keys: List[str] = field(default_factory=list)


class ResumeReconciler:
    """
    断点续传协调器

    Offers three strategies when an earlier run left progress behind:
    resume, redeploy selected steps, or start fresh.
    """

    def __init__(
        self,
        store: DeploymentStateStore,
        interaction_handler: "UserInteractionHandler",
    ) -> None:
        self.store = store
        self.interaction_handler = interaction_handler

    def needs_reconciliation(self, state: DeploymentState) -> bool:
        """A state file exists and at least one deployment or asset record is not pending."""
        return self.store.exists() and state.has_progress()

    def reconcile(self, state: DeploymentState) -> ReconciliationResult:
        """Interactively pick a strategy (when needed) and apply it."""
        if not self.needs_reconciliation(state):
            return ReconciliationResult(
                state=state,
                strategy=ResumeStrategy.RESUME,
                identifiers=state.completed_identifiers(),
            )

        logger.info(f"⚠️  Found existing deployment state in {self.store.path}")
        self._show_progress(state)
        strategy = self.choose_strategy()

        selected: List[str] = []
        if strategy == ResumeStrategy.REDEPLOY_SELECTED:
            selected = self.choose_steps(state)
        return self.apply(state, strategy, selected)

    def choose_strategy(self) -> ResumeStrategy:
        from ..interaction import InputType, InteractionRequest, QuestionCategory

        strategies = list(ResumeStrategy)
        labels = [s.label for s in strategies]
        response = self.interaction_handler.ask(
            InteractionRequest(
                question="How do you want to continue?",
                input_type=InputType.CHOICE,
                options=labels,
                category=QuestionCategory.DECISION,
                default=labels[0],
            )
        )
        if response.cancelled or response.selected_option is None:
            return ResumeStrategy.RESUME
        return strategies[response.selected_option - 1]

    def choose_steps(self, state: DeploymentState) -> List[str]:
        """Ask which recorded steps to redeploy; returns their state keys."""
        from ..interaction import InputType, InteractionRequest, QuestionCategory

        options = [f"{r.name} ({r.artifact_name})" for r in state.deployments]
        response = self.interaction_handler.ask(
            InteractionRequest(
                question="Select contracts to redeploy:",
                input_type=InputType.MULTI_CHOICE,
                options=options,
                category=QuestionCategory.DECISION,
            )
        )
        if response.cancelled:
            return []
        return [state.deployments[i - 1].state_key for i in response.selected_options]

    def apply(
        self,
        state: DeploymentState,
        strategy: ResumeStrategy,
        selected_keys: Iterable[str] = (),
    ) -> ReconciliationResult:
        """Apply ``strategy`` to ``state`` without asking anything."""
        if strategy == ResumeStrategy.FRESH_START:
            logger.info("🆕 Starting fresh deployment...")
            # 新状态在第一次真实变更时才写盘
            return ReconciliationResult(
                state=self.store.create_initial_state(),
                strategy=strategy,
            )

        reset_keys: List[str] = []
        if strategy == ResumeStrategy.REDEPLOY_SELECTED:
            for key in selected_keys:
                record = state.find_deployment(key)
                if record is None:
                    logger.warning(f"Cannot redeploy unknown step {key}")
                    continue
                if key not in reset_keys:
                    self.store.update_deployment_status(state, key, StepStatus.PENDING)
                    reset_keys.append(key)
            if reset_keys:
                logger.info(f"🔁 Reset to pending: {', '.join(reset_keys)}")
                self.store.persist(state)
            else:
                logger.info("No contracts selected, resuming normally...")
        else:
            logger.info("▶️  Resuming from previous deployment...")

        identifiers = state.completed_identifiers()
        for key, value in identifiers.items():
            logger.info(f"   {key} = {value}")
        return ReconciliationResult(
            state=state,
            strategy=strategy,
            identifiers=identifiers,
            reset_keys=reset_keys,
        )

    def _show_progress(self, state: DeploymentState) -> None:
        for record in state.deployments:
            marker = {
                StepStatus.COMPLETED: "✓",
                StepStatus.FAILED: "✗",
            }.get(record.status, "·")
            suffix = f" -> {record.result_identifier}" if record.result_identifier else ""
            logger.info(f"   {marker} {record.order}. {record.name} [{record.status.value}]{suffix}")
            if record.status == StepStatus.IN_PROGRESS:
                # 部署中断：合约可能已在链上创建，但没有记录下 ID
                logger.warning(
                    f"   ⚠️  {record.name} was interrupted mid-deployment; an orphaned contract may exist"
                )
        for asset in state.assets:
            if asset.result_identifier:
                logger.info(f"   ✓ {asset.name} -> {asset.result_identifier}")
