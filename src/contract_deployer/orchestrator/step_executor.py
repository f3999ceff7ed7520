"""Step executor: deploys a single catalog step with operator-gated retries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Optional

from ..ledger.errors import DeployError, DeployerError
from .models import DeploymentState, DeploymentStep, RunContext, StepResult, StepStatus
from .retry import InteractiveRetryPolicy, RetryPolicy
from .state_store import DeploymentStateStore

if TYPE_CHECKING:
    from ..interaction import UserInteractionHandler
    from ..ledger.base import ContractDeployer

logger = logging.getLogger(__name__)


class StepExecutor:
    """
    步骤执行器

    Runs one catalog step until it is either deployed or the operator gives up:
    - declining the confirmation marks the record FAILED (deliberate skip)
    - every failed attempt is reported and the retry policy decides whether to go again
    - the state file is rewritten after every outcome before control returns
    """

    def __init__(
        self,
        deployer: "ContractDeployer",
        store: DeploymentStateStore,
        interaction_handler: "UserInteractionHandler",
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.deployer = deployer
        self.store = store
        self.interaction_handler = interaction_handler
        self.retry_policy = retry_policy or InteractiveRetryPolicy(interaction_handler)

    def execute(
        self,
        step: DeploymentStep,
        run_ctx: RunContext,
        state: DeploymentState,
    ) -> StepResult:
        """
        执行单个步骤

        Args:
            step: Catalog entry to deploy
            run_ctx: Identifiers resolved so far; receives the new identifier on success
            state: Durable state; updated and persisted on every outcome

        Returns:
            StepResult: deployed with its identifier, or not deployed
        """
        if not self.interaction_handler.confirm(
            f"Deploy {step.name} ({step.artifact_name})?", default="y"
        ):
            logger.info(f"   ⊘ Skipped {step.name}")
            self._record(state, step, StepStatus.FAILED)
            return StepResult.not_deployed(step.state_key, "Skipped by operator")

        attempt = 0
        while True:
            attempt += 1
            try:
                self._collect_inputs(step, run_ctx)
                constructor_args = self._constructor_args(step, run_ctx)

                self._record(state, step, StepStatus.IN_PROGRESS)
                logger.info(f"   ⏳ Deploying {step.artifact_name} (attempt {attempt})...")
                identifier = self.deployer.deploy_contract(step.artifact_name, constructor_args)
            except DeployerError as exc:
                logger.warning(f"   ✗ Deployment failed: {exc}")
                self.interaction_handler.notify(f"{step.name} deployment failed: {exc}", "error")
                if self.retry_policy.should_retry(step.name, exc, attempt):
                    continue
                logger.info("   Skipping to next step...")
                self._record(state, step, StepStatus.FAILED)
                return StepResult.not_deployed(step.state_key, str(exc), attempts=attempt)

            logger.info(f"   ✅ Deployment successful! Contract ID: {identifier}")
            run_ctx.identifiers[step.state_key] = identifier
            self._record(state, step, StepStatus.COMPLETED, identifier)
            return StepResult.succeeded(step.state_key, identifier, attempts=attempt)

    def _record(
        self,
        state: DeploymentState,
        step: DeploymentStep,
        status: StepStatus,
        identifier: Optional[str] = None,
    ) -> None:
        self.store.update_deployment_status(state, step.state_key, status, identifier)
        self.store.persist(state)

    def _collect_inputs(self, step: DeploymentStep, run_ctx: RunContext) -> None:
        """Ask for the values this step needs just in time, defaulting to known ones."""
        from ..interaction import InputType, InteractionRequest, QuestionCategory

        for name in step.inputs:
            response = self.interaction_handler.ask(
                InteractionRequest(
                    question=f"{name} for {step.name}",
                    input_type=InputType.TEXT,
                    category=QuestionCategory.INFORMATION,
                    default=run_ctx.resolve(name),
                )
            )
            if response.cancelled or not response.value:
                raise DeployError(step.artifact_name, f"no value provided for {name}")
            run_ctx.inputs[name] = response.value

    def _constructor_args(self, step: DeploymentStep, run_ctx: RunContext) -> Dict[str, str]:
        args: Dict[str, str] = {}
        missing = []
        for arg in step.constructor_args:
            value = run_ctx.resolve(arg.source)
            if value is None:
                missing.append(arg.source)
            else:
                args[arg.name] = value
        if missing:
            raise DeployError(
                step.artifact_name,
                f"unresolved constructor inputs: {', '.join(missing)}",
            )
        return args
