"""Errors raised across the ledger collaborator boundary."""

from __future__ import annotations

from typing import List, Optional


class DeployerError(RuntimeError):
    """Base class for failures reported by a deployment backend."""


class DeployError(DeployerError):
    """Raised when a contract cannot be deployed."""

    def __init__(self, artifact_name: str, reason: str) -> None:
        self.artifact_name = artifact_name
        self.reason = reason
        super().__init__(f"Deployment of {artifact_name} failed: {reason}")


class AssetCreationError(DeployerError):
    """Raised when a bootstrap asset cannot be created."""

    def __init__(self, asset_name: str, reason: str) -> None:
        self.asset_name = asset_name
        self.reason = reason
        super().__init__(f"Creation of asset {asset_name} failed: {reason}")


class CommandExecutionError(DeployerError):
    """Raised when an external deployment command fails."""

    def __init__(self, command: List[str], exit_code: Optional[int], stderr: str) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(
            f"Command {' '.join(command)} failed with code {exit_code}: {stderr}"
        )
