"""Bootstrap assets created right after the asset factory is deployed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..ledger.errors import AssetCreationError, DeployerError
from ..ledger.ids import (
    InvalidIdentifierError,
    as_solidity_address,
    solidity_address_to_entity_id,
)
from .catalog import ACCESS_CONTROLLER_KEY, BASE_ASSET, RESERVE_ASSET_ID, YIELD_ASSET
from .models import DeploymentState, RunContext, StepStatus
from .retry import InteractiveRetryPolicy, RetryPolicy
from .state_store import DeploymentStateStore

if TYPE_CHECKING:
    from ..interaction import UserInteractionHandler
    from ..ledger.base import AssetCreator

logger = logging.getLogger(__name__)

# (asset record name, prompt label, identifier key of its manager)
BOOTSTRAP_ASSET_PLAN: Tuple[Tuple[str, str, str], ...] = (
    (BASE_ASSET, "Base Asset", "BASE_ASSET_MANAGER"),
    (YIELD_ASSET, "Yield Asset", "YIELD_ASSET_MANAGER"),
)


class BootstrapAssetHook:
    """
    引导资产钩子

    Creates the base and yield assets through the asset factory. Each asset is
    recorded and persisted as soon as it exists; a retry only re-attempts the
    assets that are not completed yet.
    """

    name = "bootstrap_assets"

    def __init__(
        self,
        creator: "AssetCreator",
        store: DeploymentStateStore,
        interaction_handler: "UserInteractionHandler",
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.creator = creator
        self.store = store
        self.interaction_handler = interaction_handler
        self.retry_policy = retry_policy or InteractiveRetryPolicy(interaction_handler)

    def needs_run(self, state: DeploymentState) -> bool:
        """True while any bootstrap asset record is not completed."""
        return any(not asset.is_completed for asset in state.assets)

    def reset(self, state: DeploymentState, run_ctx: RunContext) -> None:
        """Forget assets tied to a previous asset factory so they are created again."""
        for asset in state.assets:
            if asset.status != StepStatus.PENDING:
                logger.info(f"   🔁 {asset.name} belonged to the previous factory, resetting")
            self.store.update_asset_status(state, asset.name, StepStatus.PENDING)
            run_ctx.identifiers.pop(asset.name, None)
        for _, _, manager_key in BOOTSTRAP_ASSET_PLAN:
            run_ctx.identifiers.pop(manager_key, None)
        self.store.persist(state)

    def run(self, state: DeploymentState, run_ctx: RunContext) -> List[str]:
        """
        创建引导资产

        Returns:
            Names of the assets created during this call
        """
        logger.info("")
        logger.info("🪙 Creating bootstrap assets...")

        created: List[str] = []
        attempt = 0
        while True:
            attempt += 1
            try:
                self._create_pending(state, run_ctx, created)
                logger.info("   ✅ Bootstrap assets ready")
                return created
            except (DeployerError, InvalidIdentifierError) as exc:
                logger.warning(f"   ✗ Asset creation failed: {exc}")
                self.interaction_handler.notify(f"Bootstrap asset creation failed: {exc}", "error")
                if not self.retry_policy.should_retry("Bootstrap asset creation", exc, attempt):
                    logger.info("   Continuing without the remaining bootstrap assets...")
                    return created

    def _create_pending(self, state: DeploymentState, run_ctx: RunContext, created: List[str]) -> None:
        acl_contract = run_ctx.resolve(ACCESS_CONTROLLER_KEY)
        if not acl_contract:
            raise AssetCreationError(BASE_ASSET, f"{ACCESS_CONTROLLER_KEY} is not known")
        acl_reference = as_solidity_address(acl_contract)

        # 旧状态文件可能已有基础资产但缺少储备资产 ID
        reserve = state.find_asset(RESERVE_ASSET_ID)
        base = state.find_asset(BASE_ASSET)
        if reserve is not None and not reserve.is_completed and base is not None and base.is_completed:
            self._record_reserve(state, run_ctx, base.result_identifier)
            self.store.persist(state)

        for record_name, label, manager_key in BOOTSTRAP_ASSET_PLAN:
            record = state.find_asset(record_name)
            if record is not None and record.is_completed:
                logger.info(f"   ✓ {label} already created: {record.result_identifier}")
                run_ctx.identifiers.setdefault(record_name, record.result_identifier)
                continue

            asset_name = self._ask(f"{label} Name", run_ctx.resolve(f"{record_name}_NAME"))
            symbol = self._ask(f"{label} Symbol", run_ctx.resolve(f"{record_name}_SYMBOL"))
            run_ctx.inputs[f"{record_name}_NAME"] = asset_name
            run_ctx.inputs[f"{record_name}_SYMBOL"] = symbol

            logger.info(f"   ⏳ Creating {label} {asset_name} ({symbol})...")
            creation = self.creator.create_asset(asset_name, symbol, acl_reference)
            logger.info(f"   ✅ {label} created: {creation.asset_identifier}")

            run_ctx.identifiers[record_name] = creation.asset_identifier
            run_ctx.identifiers[manager_key] = creation.manager_identifier
            self.store.update_asset_status(state, record_name, StepStatus.COMPLETED, creation.asset_identifier)
            if record_name == BASE_ASSET:
                self._record_reserve(state, run_ctx, creation.asset_identifier)
            self.store.persist(state)
            created.append(record_name)

    def _record_reserve(self, state: DeploymentState, run_ctx: RunContext, base_address: str) -> None:
        reserve_id = solidity_address_to_entity_id(base_address)
        run_ctx.identifiers[RESERVE_ASSET_ID] = reserve_id
        self.store.update_asset_status(state, RESERVE_ASSET_ID, StepStatus.COMPLETED, reserve_id)
        logger.info(f"   Reserve asset id: {reserve_id}")

    def _ask(self, question: str, default: Optional[str]) -> str:
        from ..interaction import InputType, InteractionRequest, QuestionCategory

        response = self.interaction_handler.ask(
            InteractionRequest(
                question=question,
                input_type=InputType.TEXT,
                category=QuestionCategory.INFORMATION,
                default=default,
            )
        )
        if response.cancelled or not response.value:
            raise AssetCreationError(question, "no value provided")
        return response.value
