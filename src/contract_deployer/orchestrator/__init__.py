"""Orchestrator module for resumable contract deployment.

This module provides the deployment state machine:
- DeploymentOrchestrator: Walks the step catalog and runs post-completion hooks
- StepExecutor: Deploys a single step with operator-gated retries
- DeploymentStateStore: Durable, atomically rewritten deployment state
- ResumeReconciler: Resume / redeploy selected / start fresh
- BootstrapAssetHook: Creates the bootstrap assets after the asset factory
"""

from .models import (
    StepStatus,
    DeploymentMode,
    ResumeStrategy,
    ConstructorArg,
    DeploymentStep,
    ContractDeploymentRecord,
    BootstrapAssetRecord,
    DeploymentState,
    RunContext,
    StepResult,
    DeploymentReport,
)
from .catalog import (
    STEP_CATALOG,
    BOOTSTRAP_ASSET_NAMES,
    BOOTSTRAP_ASSETS_HOOK,
    validate_catalog,
)
from .state_store import DeploymentStateStore, StateFileCorruptError
from .retry import RetryPolicy, InteractiveRetryPolicy, ScriptedRetryPolicy
from .reconciler import ResumeReconciler, ReconciliationResult
from .step_executor import StepExecutor
from .bootstrap import BootstrapAssetHook
from .env_export import EnvFileExporter, EnvExportError
from .orchestrator import DeploymentOrchestrator, aggregate_identifiers

__all__ = [
    "StepStatus",
    "DeploymentMode",
    "ResumeStrategy",
    "ConstructorArg",
    "DeploymentStep",
    "ContractDeploymentRecord",
    "BootstrapAssetRecord",
    "DeploymentState",
    "RunContext",
    "StepResult",
    "DeploymentReport",
    "STEP_CATALOG",
    "BOOTSTRAP_ASSET_NAMES",
    "BOOTSTRAP_ASSETS_HOOK",
    "validate_catalog",
    "DeploymentStateStore",
    "StateFileCorruptError",
    "RetryPolicy",
    "InteractiveRetryPolicy",
    "ScriptedRetryPolicy",
    "ResumeReconciler",
    "ReconciliationResult",
    "StepExecutor",
    "BootstrapAssetHook",
    "EnvFileExporter",
    "EnvExportError",
    "DeploymentOrchestrator",
    "aggregate_identifiers",
]
