"""Rehearsal backend that allocates identifiers locally instead of touching a network."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .artifacts import ArtifactLoader
from .base import AssetCreation, DeploymentBackend
from .errors import AssetCreationError, DeployError
from .ids import entity_id_to_solidity_address

logger = logging.getLogger(__name__)


class SimulatedBackend(DeploymentBackend):
    """
    Simulated deployment backend.

    Identifiers are allocated sequentially as ``0.0.<n>``; assets are reported with
    long-zero EVM addresses like a real asset factory would. ``failures`` scripts how
    many times a given artifact or asset name fails before succeeding.
    """

    name = "simulated"

    def __init__(
        self,
        start: int = 1001,
        shard: int = 0,
        realm: int = 0,
        artifacts: Optional[ArtifactLoader] = None,
        failures: Optional[Dict[str, int]] = None,
    ) -> None:
        self.next_num = start
        self.shard = shard
        self.realm = realm
        self.artifacts = artifacts
        self.failures = dict(failures or {})
        self.deploy_calls: List[Tuple[str, Dict[str, str]]] = []
        self.asset_calls: List[Tuple[str, str, str]] = []

    def _allocate(self) -> str:
        entity_id = f"{self.shard}.{self.realm}.{self.next_num}"
        self.next_num += 1
        return entity_id

    def _should_fail(self, key: str) -> bool:
        remaining = self.failures.get(key, 0)
        if remaining > 0:
            self.failures[key] = remaining - 1
            return True
        return False

    def deploy_contract(self, artifact_name: str, constructor_args: Dict[str, str]) -> str:
        self.deploy_calls.append((artifact_name, dict(constructor_args)))
        # 仅在产物目录存在时校验产物
        if self.artifacts is not None and self.artifacts.root.is_dir():
            self.artifacts.load(artifact_name)
        if self._should_fail(artifact_name):
            raise DeployError(artifact_name, "simulated network rejection")

        contract_id = self._allocate()
        logger.info(f"   [simulated] {artifact_name} deployed as {contract_id}")
        return contract_id

    def create_asset(self, name: str, symbol: str, acl_reference: str) -> AssetCreation:
        self.asset_calls.append((name, symbol, acl_reference))
        if self._should_fail(name):
            raise AssetCreationError(name, "simulated network rejection")

        manager = entity_id_to_solidity_address(self._allocate())
        token = entity_id_to_solidity_address(self._allocate())
        logger.info(f"   [simulated] asset {name} ({symbol}) created at {token}")
        return AssetCreation(manager_identifier=manager, asset_identifier=token)
