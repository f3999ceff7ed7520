"""Deployment orchestrator: walks the step catalog in dependency order."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from .catalog import ASSET_FACTORY_KEY, STEP_CATALOG, validate_catalog
from .env_export import EnvExportError, EnvFileExporter, format_env_lines
from .models import (
    DeploymentMode,
    DeploymentReport,
    DeploymentState,
    DeploymentStep,
    RunContext,
)
from .state_store import DeploymentStateStore
from .step_executor import StepExecutor

if TYPE_CHECKING:
    from ..interaction import UserInteractionHandler
    from .bootstrap import BootstrapAssetHook

logger = logging.getLogger(__name__)


def aggregate_identifiers(state: DeploymentState, run_identifiers: Dict[str, str]) -> Dict[str, str]:
    """
    Every identifier known after a run.

    Completed records provide the base; values resolved during the run win
    where both exist.
    """
    identifiers = state.completed_identifiers()
    identifiers.update({k: v for k, v in run_identifiers.items() if v})
    return identifiers


class DeploymentOrchestrator:
    """
    部署编排器

    按目录顺序执行每个部署步骤，
    使用 StepExecutor 部署单个合约，并在步骤完成后运行其钩子。
    """

    def __init__(
        self,
        store: DeploymentStateStore,
        step_executor: StepExecutor,
        interaction_handler: "UserInteractionHandler",
        hooks: Optional[Dict[str, "BootstrapAssetHook"]] = None,
        exporter: Optional[EnvFileExporter] = None,
        steps: Iterable[DeploymentStep] = STEP_CATALOG,
    ) -> None:
        self.store = store
        self.step_executor = step_executor
        self.interaction_handler = interaction_handler
        self.hooks = dict(hooks or {})
        self.exporter = exporter or EnvFileExporter()
        self.steps = validate_catalog(steps)

    def run(
        self,
        state: DeploymentState,
        mode: DeploymentMode = DeploymentMode.FULL,
        identifiers: Optional[Dict[str, str]] = None,
        ambient: Optional[Dict[str, str]] = None,
    ) -> DeploymentReport:
        """
        执行部署

        Args:
            state: State returned by the reconciler
            mode: Which part of the catalog to cover
            identifiers: Identifiers carried over from earlier runs
            ambient: Read-only ambient configuration snapshot

        Returns:
            DeploymentReport: what was deployed, failed, skipped and exported
        """
        report = DeploymentReport(mode=mode)
        self._show_plan(state, mode)

        if not self.interaction_handler.confirm("Ready to begin deployment?", default="y"):
            logger.info("Deployment cancelled.")
            report.cancelled = True
            report.identifiers = aggregate_identifiers(state, identifiers or {})
            return report

        run_ctx = RunContext(
            identifiers={**state.completed_identifiers(), **(identifiers or {})},
            ambient=dict(ambient or {}),
        )

        if mode == DeploymentMode.ASSETS_ONLY:
            factory = state.find_deployment(ASSET_FACTORY_KEY)
            if factory is None or not factory.is_completed:
                self.interaction_handler.notify(
                    "Asset Factory contract not found. Deploy contracts first.", "warning"
                )

        for step in self.steps:
            record = state.find_deployment(step.state_key)
            deployed_now = False
            logger.info("")
            logger.info("=" * 60)
            logger.info(f"📍 Step {step.order}/{len(self.steps)}: {step.name}")
            logger.info("=" * 60)

            if record is not None and record.is_completed:
                logger.info(f"   ✓ Already deployed: {record.result_identifier} (skipping)")
                report.skipped.append(step.state_key)
            elif mode.deploys_contracts:
                result = self.step_executor.execute(step, run_ctx, state)
                deployed_now = result.deployed
                if result.deployed:
                    report.deployed.append(step.state_key)
                else:
                    report.failed.append(step.state_key)
            else:
                logger.info("   ⊘ Contract deployment disabled in this mode")
                report.skipped.append(step.state_key)

            self._run_hook(step, state, run_ctx, mode, report, deployed_now)

        report.identifiers = aggregate_identifiers(state, run_ctx.identifiers)
        self._show_summary(report)
        self._export(report)
        return report

    def _run_hook(
        self,
        step: DeploymentStep,
        state: DeploymentState,
        run_ctx: RunContext,
        mode: DeploymentMode,
        report: DeploymentReport,
        deployed_now: bool = False,
    ) -> None:
        if not step.post_completion or not mode.creates_assets:
            return
        record = state.find_deployment(step.state_key)
        if record is None or not record.is_completed:
            return
        hook = self.hooks.get(step.post_completion)
        if hook is None:
            logger.warning(f"No hook registered for {step.post_completion}")
            return
        if deployed_now:
            # 新部署的工厂：旧资产属于上一个工厂，需要重新创建
            hook.reset(state, run_ctx)
        elif not hook.needs_run(state):
            logger.info("   ✓ Bootstrap assets already created")
            return
        report.assets_created.extend(hook.run(state, run_ctx))

    def _show_plan(self, state: DeploymentState, mode: DeploymentMode) -> None:
        logger.info("")
        logger.info("=" * 60)
        logger.info("🚀 CONTRACT DEPLOYMENT")
        logger.info("=" * 60)
        logger.info(f"Mode: {mode.label}")
        logger.info(f"State file: {self.store.path}")
        logger.info("")
        logger.info("Steps:")
        for step in self.steps:
            record = state.find_deployment(step.state_key)
            status = record.status.value if record is not None else "pending"
            logger.info(f"  {step.order}. {step.name} ({step.artifact_name}) [{status}]")
        logger.info("")

    def _show_summary(self, report: DeploymentReport) -> None:
        logger.info("")
        logger.info("=" * 60)
        logger.info("📋 DEPLOYMENT SUMMARY")
        logger.info("=" * 60)
        logger.info(
            f"Deployed: {len(report.deployed)}  Failed: {len(report.failed)}  "
            f"Skipped: {len(report.skipped)}  Assets: {len(report.assets_created)}"
        )
        for key, value in report.identifiers.items():
            logger.info(f"   {key} = {value}")
        if report.failed:
            logger.warning(f"⚠️  Not deployed: {', '.join(report.failed)}")
        logger.info("")

    def _export(self, report: DeploymentReport) -> None:
        if not report.identifiers:
            return
        if not self.interaction_handler.confirm("Update .env file with deployed contract IDs?", default="y"):
            logger.info("Skipping .env update. Add these lines manually:")
            self._print_lines(report.identifiers)
            return

        try:
            self.exporter.export(report.identifiers)
            report.exported = True
        except EnvExportError as exc:
            logger.error(f"❌ {exc}")
            report.exported = False
            report.export_error = str(exc)
            self.interaction_handler.notify(f"{exc}. Add these lines manually:", "error")
            self._print_lines(report.identifiers)

    def _print_lines(self, identifiers: Dict[str, str]) -> None:
        lines: List[str] = format_env_lines(identifiers)
        self.interaction_handler.notify("\n".join(lines), "info")
