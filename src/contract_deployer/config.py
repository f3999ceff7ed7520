"""Configuration loading utilities for Contract Deployer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import dotenv_values, load_dotenv

from . import paths

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")

SUPPORTED_BACKENDS = ("command", "simulated")


class ConfigurationError(ValueError):
    """Raised when the configuration cannot be used for a deployment run."""


@dataclass
class NetworkConfig:
    """Ledger network and operator account settings."""

    network: str = "testnet"
    operator_account_id: Optional[str] = None
    operator_key: Optional[str] = None
    allow_list: int = 1


@dataclass
class DeployerConfig:
    """Settings for the deployment backend and the on-disk locations."""

    backend: str = "simulated"            # "command" | "simulated"
    deploy_command: List[str] = field(default_factory=list)
    asset_command: List[str] = field(default_factory=list)
    command_timeout: int = 900            # 单次外部命令超时（秒）
    artifacts_dir: str = str(paths.ARTIFACTS_DIR)
    state_file: str = str(paths.STATE_FILE)
    env_file: str = str(paths.ENV_FILE)
    simulated_start: int = 1001           # simulated 后端的首个实体编号


@dataclass
class InteractionConfig:
    """Configuration for operator interaction."""

    use_rich: bool = True


@dataclass
class AppConfig:
    """Top-level configuration."""

    network: NetworkConfig = field(default_factory=NetworkConfig)
    deployer: DeployerConfig = field(default_factory=DeployerConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        # 过滤掉以下划线开头的注释字段
        network_payload = _strip_comments(payload.get("network", {}) or {})
        deployer_payload = _strip_comments(payload.get("deployer", {}) or {})
        interaction_payload = _strip_comments(payload.get("interaction", {}) or {})

        try:
            return cls(
                network=NetworkConfig(**{**NetworkConfig().__dict__, **network_payload}),
                deployer=DeployerConfig(**{**DeployerConfig().__dict__, **deployer_payload}),
                interaction=InteractionConfig(
                    **{**InteractionConfig().__dict__, **interaction_payload}
                ),
            )
        except TypeError as exc:
            raise ConfigurationError(f"Unknown configuration field: {exc}") from exc

    def validate(self) -> None:
        backend = self.deployer.backend.lower()
        if backend not in SUPPORTED_BACKENDS:
            raise ConfigurationError(
                f"Unsupported backend: {self.deployer.backend}. "
                f"Supported backends: {', '.join(SUPPORTED_BACKENDS)}"
            )
        if backend == "command" and not self.deployer.deploy_command:
            raise ConfigurationError(
                "The command backend requires deployer.deploy_command to be set"
            )


def _strip_comments(section: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in section.items() if not k.startswith("_")}


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    Environment variables (higher priority than config file):
    - CONTRACT_DEPLOYER_BACKEND: deployment backend ("command" or "simulated")
    - CONTRACT_DEPLOYER_STATE_FILE: durable state file location
    - CONTRACT_DEPLOYER_ENV_FILE: .env file receiving deployed identifiers
    - CONTRACT_DEPLOYER_ARTIFACTS_DIR: compiled contract artifacts root
    - NETWORK: ledger network name
    - OPERATOR_ACCOUNT_ID / OPERATOR_KEY: operator credentials
    - ALLOW_LIST: allow list level passed to constructors
    """
    if path and not Path(path).is_file():
        raise FileNotFoundError(f"Could not find configuration file: {path}")

    config = AppConfig()
    candidate = Path(path) if path else _DEFAULT_CONFIG_PATH
    if candidate.is_file():
        with candidate.open("r", encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"Invalid JSON in {candidate}: {exc}") from exc
        config = AppConfig.from_dict(data)

    env_backend = os.getenv("CONTRACT_DEPLOYER_BACKEND")
    if env_backend:
        config.deployer.backend = env_backend

    env_state_file = os.getenv("CONTRACT_DEPLOYER_STATE_FILE")
    if env_state_file:
        config.deployer.state_file = env_state_file

    env_env_file = os.getenv("CONTRACT_DEPLOYER_ENV_FILE")
    if env_env_file:
        config.deployer.env_file = env_env_file

    env_artifacts = os.getenv("CONTRACT_DEPLOYER_ARTIFACTS_DIR")
    if env_artifacts:
        config.deployer.artifacts_dir = env_artifacts

    env_network = os.getenv("NETWORK")
    if env_network:
        config.network.network = env_network

    env_account = os.getenv("OPERATOR_ACCOUNT_ID")
    if env_account:
        config.network.operator_account_id = env_account

    env_key = os.getenv("OPERATOR_KEY")
    if env_key:
        config.network.operator_key = env_key

    env_allow_list = os.getenv("ALLOW_LIST")
    if env_allow_list:
        try:
            config.network.allow_list = int(env_allow_list)
        except ValueError as exc:
            raise ConfigurationError(f"ALLOW_LIST must be an integer, got {env_allow_list!r}") from exc

    config.validate()
    return config


def load_ambient(env_file: Optional[str] = None) -> Dict[str, str]:
    """Snapshot of the ambient configuration: the .env file overlaid by the process environment.

    The snapshot is read once and used as a source of defaults; nothing writes back to
    ``os.environ`` during a run.
    """
    ambient: Dict[str, str] = {}
    env_path = Path(env_file) if env_file else paths.ENV_FILE
    if env_path.is_file():
        ambient.update({k: v for k, v in dotenv_values(env_path).items() if v is not None})
    ambient.update(os.environ)
    return ambient
