"""Interfaces of the deployment backends consumed by the orchestrator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class AssetCreation:
    """Identifiers produced by creating one bootstrap asset."""

    manager_identifier: str
    asset_identifier: str
    transaction_id: Optional[str] = None


class ContractDeployer(ABC):
    """Deploys one compiled contract and returns its network identifier."""

    @abstractmethod
    def deploy_contract(self, artifact_name: str, constructor_args: Dict[str, str]) -> str:
        """
        Deploy ``artifact_name`` with the given constructor arguments.

        Returns:
            The contract identifier (``shard.realm.num``)

        Raises:
            DeployerError: on any failure; the orchestrator decides whether to retry
        """


class AssetCreator(ABC):
    """Creates a bootstrap asset through the asset factory contract."""

    @abstractmethod
    def create_asset(self, name: str, symbol: str, acl_reference: str) -> AssetCreation:
        """
        Create an asset named ``name``/``symbol`` governed by ``acl_reference``.

        Raises:
            DeployerError: on any failure
        """


class DeploymentBackend(ContractDeployer, AssetCreator):
    """A backend able to both deploy contracts and create assets."""

    name: str = "backend"
