"""Deployment backend that delegates to external command-line tools.

The deploy command receives everything it needs through its environment
(``DEPLOY_CONTRACT_NAME``, ``DEPLOY_CONTRACT_ARTIFACT``, operator credentials and
the upper-cased constructor arguments) and is expected to print a line such as
``Contract id 0.0.1234``. The asset command receives ``ASSET_NAME``,
``ASSET_SYMBOL``, ``ACL_CONTRACT`` and ``ALLOW_LIST`` and prints
``Asset Manager Address: <addr>`` and ``Token Address: <addr>``.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .artifacts import ArtifactLoader
from .base import AssetCreation, DeploymentBackend
from .errors import AssetCreationError, CommandExecutionError, DeployError

logger = logging.getLogger(__name__)

CONTRACT_ID_RE = re.compile(r"Contract id[:\s]+(\d+\.\d+\.\d+)")
ASSET_MANAGER_RE = re.compile(r"Asset Manager Address:\s*(\S+)")
TOKEN_ADDRESS_RE = re.compile(r"Token Address:\s*(\S+)")
TRANSACTION_ID_RE = re.compile(r"Transaction ID:\s*(\S+)")

# 不应出现在 debug 日志中的变量
_SECRET_KEYS = ("OPERATOR_KEY",)


@dataclass
class CommandResult:
    """Result of one external command run."""
    command: List[str]
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class CommandBackend(DeploymentBackend):
    """Runs the configured deploy/asset commands as child processes."""

    name = "command"

    def __init__(
        self,
        deploy_command: List[str],
        asset_command: Optional[List[str]] = None,
        artifacts: Optional[ArtifactLoader] = None,
        base_env: Optional[Dict[str, str]] = None,
        timeout: int = 900,
        working_dir: Optional[str] = None,
    ) -> None:
        self.deploy_command = list(deploy_command)
        self.asset_command = list(asset_command or [])
        self.artifacts = artifacts
        self.base_env = dict(base_env or {})
        self.timeout = timeout
        self.working_dir = working_dir

    def deploy_contract(self, artifact_name: str, constructor_args: Dict[str, str]) -> str:
        env = {name.upper(): value for name, value in constructor_args.items()}
        env["DEPLOY_CONTRACT_NAME"] = artifact_name
        if self.artifacts is not None:
            artifact = self.artifacts.load(artifact_name)
            env["DEPLOY_CONTRACT_ARTIFACT"] = str(artifact.path.resolve())

        result = self._run(self.deploy_command, env)
        if not result.ok:
            raise CommandExecutionError(result.command, result.exit_status, result.stderr)

        matches = CONTRACT_ID_RE.findall(result.stdout)
        if not matches:
            raise DeployError(artifact_name, "deploy command printed no contract id")
        return matches[-1]

    def create_asset(self, name: str, symbol: str, acl_reference: str) -> AssetCreation:
        if not self.asset_command:
            raise AssetCreationError(name, "no asset command configured")

        env = {
            "ASSET_NAME": name,
            "ASSET_SYMBOL": symbol,
            "ACL_CONTRACT": acl_reference,
        }
        result = self._run(self.asset_command, env)
        if not result.ok:
            raise CommandExecutionError(result.command, result.exit_status, result.stderr)

        manager = ASSET_MANAGER_RE.search(result.stdout)
        token = TOKEN_ADDRESS_RE.search(result.stdout)
        if not manager or not token:
            raise AssetCreationError(name, "asset command printed no manager/token address")
        transaction = TRANSACTION_ID_RE.search(result.stdout)
        return AssetCreation(
            manager_identifier=manager.group(1),
            asset_identifier=token.group(1),
            transaction_id=transaction.group(1) if transaction else None,
        )

    def _run(self, command: List[str], extra_env: Dict[str, str]) -> CommandResult:
        env = {**os.environ, **self.base_env, **extra_env}
        shown = {k: ("***" if k in _SECRET_KEYS else v) for k, v in extra_env.items()}
        logger.debug(f"Running {' '.join(command)} with {shown}")
        try:
            process = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=str(Path(self.working_dir)) if self.working_dir else None,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=command,
                stdout="",
                stderr=f"Command timed out after {self.timeout} seconds",
                exit_status=-1,
            )
        except OSError as exc:
            return CommandResult(command=command, stdout="", stderr=str(exc), exit_status=-1)

        return CommandResult(
            command=command,
            stdout=process.stdout.strip(),
            stderr=process.stderr.strip(),
            exit_status=process.returncode,
        )
