"""Boundary to the ledger network: contract deployment and asset creation backends."""

from .base import AssetCreation, AssetCreator, ContractDeployer, DeploymentBackend
from .errors import AssetCreationError, CommandExecutionError, DeployError, DeployerError
from .artifacts import ArtifactLoader, ContractArtifact
from .ids import (
    InvalidIdentifierError,
    as_solidity_address,
    entity_id_to_solidity_address,
    solidity_address_to_entity_id,
)
from .backend import create_backend

__all__ = [
    "AssetCreation",
    "AssetCreator",
    "ContractDeployer",
    "DeploymentBackend",
    "AssetCreationError",
    "CommandExecutionError",
    "DeployError",
    "DeployerError",
    "ArtifactLoader",
    "ContractArtifact",
    "InvalidIdentifierError",
    "as_solidity_address",
    "entity_id_to_solidity_address",
    "solidity_address_to_entity_id",
    "create_backend",
]
