"""Shared fixtures for the orchestrator tests."""

import pytest

from contract_deployer.interaction import AutoResponseHandler
from contract_deployer.ledger.simulated import SimulatedBackend
from contract_deployer.orchestrator import DeploymentStateStore

OPERATOR_ANSWERS = {
    "TREASURY_ADDRESS": "0.0.5005",
    "ORDER_BOOK_TREASURY": "0.0.6006",
    "Base Asset Name": "Cradle USD",
    "Base Asset Symbol": "cUSD",
    "Yield Asset Name": "Cradle Yield",
    "Yield Asset Symbol": "cYLD",
}


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "deployer" / "deployment_state.json"


@pytest.fixture
def store(state_path):
    return DeploymentStateStore(state_path)


@pytest.fixture
def backend():
    return SimulatedBackend(start=1001)


@pytest.fixture
def ambient():
    return {"ALLOW_LIST": "1"}


@pytest.fixture
def make_handler():
    """Auto-answering operator: confirms everything and fills in the standard inputs."""

    def _make(**overrides):
        responses = dict(OPERATOR_ANSWERS)
        responses.update(overrides)
        return AutoResponseHandler(default_responses=responses, always_confirm=True)

    return _make


@pytest.fixture
def handler(make_handler):
    return make_handler()
