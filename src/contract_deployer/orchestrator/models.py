"""Data models for the orchestrator module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StepStatus(Enum):
    """部署记录状态"""
    PENDING = "pending"
    IN_PROGRESS = "inprogress"
    COMPLETED = "completed"
    FAILED = "failed"


class DeploymentMode(Enum):
    """What part of the catalog a run covers."""
    FULL = "full"
    CONTRACTS_ONLY = "contracts-only"
    ASSETS_ONLY = "assets-only"

    @property
    def label(self) -> str:
        return {
            DeploymentMode.FULL: "Full deployment (contracts + bootstrap assets)",
            DeploymentMode.CONTRACTS_ONLY: "Contracts only",
            DeploymentMode.ASSETS_ONLY: "Bootstrap assets only",
        }[self]

    @property
    def deploys_contracts(self) -> bool:
        return self is not DeploymentMode.ASSETS_ONLY

    @property
    def creates_assets(self) -> bool:
        return self is not DeploymentMode.CONTRACTS_ONLY


class ResumeStrategy(Enum):
    """How to reconcile an existing state file at start-up."""
    RESUME = "resume"
    REDEPLOY_SELECTED = "redeploy-selected"
    FRESH_START = "fresh-start"

    @property
    def label(self) -> str:
        return {
            ResumeStrategy.RESUME: "Resume from failed deployments",
            ResumeStrategy.REDEPLOY_SELECTED: "Redeploy specific contracts",
            ResumeStrategy.FRESH_START: "Start fresh deployment",
        }[self]


@dataclass(frozen=True)
class ConstructorArg:
    """One constructor argument and the key its value is resolved from."""
    name: str
    source: str


@dataclass(frozen=True)
class DeploymentStep:
    """Step Catalog entry: one deployable contract at a fixed position."""
    order: int
    name: str
    artifact_name: str
    state_key: str
    # 部署前需要操作员提供的参数（例如 TREASURY_ADDRESS）
    inputs: Tuple[str, ...] = ()
    constructor_args: Tuple[ConstructorArg, ...] = ()
    # 部署成功后执行的钩子名称（例如创建引导资产）
    post_completion: Optional[str] = None


@dataclass
class ContractDeploymentRecord:
    """Durable progress of one catalog step."""
    order: int
    name: str
    artifact_name: str
    state_key: str
    status: StepStatus = StepStatus.PENDING
    result_identifier: Optional[str] = None

    @classmethod
    def pending(cls, step: DeploymentStep) -> "ContractDeploymentRecord":
        return cls(
            order=step.order,
            name=step.name,
            artifact_name=step.artifact_name,
            state_key=step.state_key,
        )

    @property
    def is_completed(self) -> bool:
        return self.status == StepStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order,
            "name": self.name,
            "artifact_name": self.artifact_name,
            "state_key": self.state_key,
            "status": self.status.value,
            "result_identifier": self.result_identifier,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractDeploymentRecord":
        # 兼容旧版部署工具写出的字段名（contract_name / env_var / contract_id）
        return cls(
            order=int(data["order"]),
            name=str(data["name"]),
            artifact_name=str(_first(data, "artifact_name", "contract_name")),
            state_key=str(_first(data, "state_key", "env_var")),
            status=StepStatus(data["status"]),
            result_identifier=_optional_str(data, "result_identifier", "contract_id"),
        )


@dataclass
class BootstrapAssetRecord:
    """Durable progress of one bootstrap asset."""
    name: str
    status: StepStatus = StepStatus.PENDING
    result_identifier: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == StepStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "result_identifier": self.result_identifier,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BootstrapAssetRecord":
        return cls(
            name=str(data["name"]),
            status=StepStatus(data["status"]),
            result_identifier=_optional_str(data, "result_identifier", "id"),
        )


@dataclass
class DeploymentState:
    """The durable aggregate: every catalog step and every bootstrap asset."""
    started_at: str
    last_updated: str
    deployments: List[ContractDeploymentRecord] = field(default_factory=list)
    assets: List[BootstrapAssetRecord] = field(default_factory=list)

    def find_deployment(self, state_key: str) -> Optional[ContractDeploymentRecord]:
        for record in self.deployments:
            if record.state_key == state_key:
                return record
        return None

    def find_asset(self, name: str) -> Optional[BootstrapAssetRecord]:
        for record in self.assets:
            if record.name == name:
                return record
        return None

    def has_progress(self) -> bool:
        """True when any deployment or asset record has left ``PENDING``."""
        return any(r.status != StepStatus.PENDING for r in self.deployments) or any(
            r.status != StepStatus.PENDING for r in self.assets
        )

    def completed_identifiers(self) -> Dict[str, str]:
        """state key / asset name -> identifier for every completed record."""
        identifiers: Dict[str, str] = {}
        for record in self.deployments:
            if record.is_completed and record.result_identifier:
                identifiers[record.state_key] = record.result_identifier
        for asset in self.assets:
            if asset.is_completed and asset.result_identifier:
                identifiers[asset.name] = asset.result_identifier
        return identifiers

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at,
            "last_updated": self.last_updated,
            "deployments": [r.to_dict() for r in self.deployments],
            "assets": [a.to_dict() for a in self.assets],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentState":
        deployments = [ContractDeploymentRecord.from_dict(d) for d in data["deployments"]]
        assets = [BootstrapAssetRecord.from_dict(a) for a in _first(data, "assets", "tokens")]
        return cls(
            started_at=str(data["started_at"]),
            last_updated=str(data["last_updated"]),
            deployments=sorted(deployments, key=lambda r: r.order),
            assets=assets,
        )


@dataclass
class RunContext:
    """Values shared by the steps of one run, passed explicitly from step to step."""
    # 已解析的标识符（合约 ID、资产 ID 等），后续步骤的构造参数从这里读取
    identifiers: Dict[str, str] = field(default_factory=dict)
    # 操作员在部署时提供的参数
    inputs: Dict[str, str] = field(default_factory=dict)
    # 启动时读取的 .env + 进程环境快照，只读
    ambient: Dict[str, str] = field(default_factory=dict)

    def resolve(self, key: str) -> Optional[str]:
        for source in (self.inputs, self.identifiers, self.ambient):
            value = source.get(key)
            if value:
                return value
        return None


@dataclass
class StepResult:
    """Outcome of executing one catalog step."""
    deployed: bool
    status: StepStatus
    state_key: str
    identifier: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0

    @classmethod
    def succeeded(cls, state_key: str, identifier: str, attempts: int = 1) -> "StepResult":
        return cls(
            deployed=True,
            status=StepStatus.COMPLETED,
            state_key=state_key,
            identifier=identifier,
            attempts=attempts,
        )

    @classmethod
    def not_deployed(cls, state_key: str, reason: str, attempts: int = 0) -> "StepResult":
        return cls(
            deployed=False,
            status=StepStatus.FAILED,
            state_key=state_key,
            error=reason,
            attempts=attempts,
        )


@dataclass
class DeploymentReport:
    """Summary of one orchestration run."""
    mode: DeploymentMode
    cancelled: bool = False
    deployed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    assets_created: List[str] = field(default_factory=list)
    identifiers: Dict[str, str] = field(default_factory=dict)
    exported: Optional[bool] = None      # None: not attempted
    export_error: Optional[str] = None


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    raise KeyError(keys[0])


def _optional_str(data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        if key in data:
            value = data[key]
            return None if value is None else str(value)
    return None
