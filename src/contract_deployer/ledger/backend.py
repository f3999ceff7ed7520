"""Factory for deployment backends."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional

from .artifacts import ArtifactLoader
from .base import DeploymentBackend

if TYPE_CHECKING:
    from ..config import AppConfig


def create_backend(
    config: "AppConfig",
    ambient: Optional[Dict[str, str]] = None,
) -> DeploymentBackend:
    """
    Create the deployment backend selected by ``config.deployer.backend``.

    Args:
        config: Application configuration
        ambient: Ambient configuration snapshot forwarded to command backends

    Raises:
        ValueError: If the backend is not supported
    """
    backend = config.deployer.backend.lower()
    artifacts = ArtifactLoader(Path(config.deployer.artifacts_dir))

    if backend == "simulated":
        from .simulated import SimulatedBackend
        return SimulatedBackend(start=config.deployer.simulated_start, artifacts=artifacts)
    elif backend == "command":
        from .command import CommandBackend

        base_env = dict(ambient or {})
        base_env["NETWORK"] = config.network.network
        base_env["ALLOW_LIST"] = str(config.network.allow_list)
        if config.network.operator_account_id:
            base_env["OPERATOR_ACCOUNT_ID"] = config.network.operator_account_id
        if config.network.operator_key:
            base_env["OPERATOR_KEY"] = config.network.operator_key
        return CommandBackend(
            deploy_command=config.deployer.deploy_command,
            asset_command=config.deployer.asset_command,
            artifacts=artifacts,
            base_env=base_env,
            timeout=config.deployer.command_timeout,
        )
    else:
        raise ValueError(
            f"Unsupported backend: {backend}. Supported backends: command, simulated"
        )
