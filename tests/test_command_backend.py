"""Tests for the command-line deployment backend."""

import sys

import pytest

from contract_deployer.config import AppConfig
from contract_deployer.ledger import (
    CommandExecutionError,
    DeployError,
    AssetCreationError,
    create_backend,
)
from contract_deployer.ledger.command import CommandBackend
from contract_deployer.ledger.simulated import SimulatedBackend


def _python(code):
    return [sys.executable, "-c", code]


class TestCommandBackend:
    def test_contract_id_parsed_from_stdout(self):
        backend = CommandBackend(
            _python(
                "import os\n"
                "print('Uploading bytecode...')\n"
                "print('Contract id: 0.0.76')\n"
                "print('Contract id: 0.0.77 (' + os.environ['DEPLOY_CONTRACT_NAME'] + ')')"
            )
        )

        assert backend.deploy_contract("AccessController", {}) == "0.0.77"

    def test_constructor_args_passed_as_environment(self):
        backend = CommandBackend(
            _python("import os\nprint('Contract id ' + os.environ['ACL_CONTRACT'])"),
            base_env={"NETWORK": "testnet"},
        )

        assert backend.deploy_contract("AssetFactory", {"acl_contract": "0.0.1001"}) == "0.0.1001"

    def test_non_zero_exit(self):
        backend = CommandBackend(_python("import sys\nsys.stderr.write('boom')\nsys.exit(3)"))

        with pytest.raises(CommandExecutionError) as excinfo:
            backend.deploy_contract("AccessController", {})
        assert excinfo.value.exit_code == 3
        assert "boom" in excinfo.value.stderr

    def test_missing_contract_id(self):
        backend = CommandBackend(_python("print('done')"))

        with pytest.raises(DeployError):
            backend.deploy_contract("AccessController", {})

    def test_missing_executable_is_a_deploy_failure(self, tmp_path):
        backend = CommandBackend([str(tmp_path / "does-not-exist")])

        with pytest.raises(CommandExecutionError):
            backend.deploy_contract("AccessController", {})

    def test_asset_creation(self):
        backend = CommandBackend(
            _python("print('unused')"),
            asset_command=_python(
                "import os\n"
                "print('Asset Manager Address: 0xabc')\n"
                "print('Token Address: 0xdef')\n"
                "print('Transaction ID: 0.0.2@1700000000.1 ' + os.environ['ASSET_SYMBOL'])"
            ),
        )

        creation = backend.create_asset("Cradle USD", "cUSD", "00000000000000000000000000000000000003e9")

        assert creation.manager_identifier == "0xabc"
        assert creation.asset_identifier == "0xdef"
        assert creation.transaction_id == "0.0.2@1700000000.1"

    def test_asset_creation_without_command(self):
        backend = CommandBackend(_python("print('unused')"))

        with pytest.raises(AssetCreationError):
            backend.create_asset("Cradle USD", "cUSD", "00")

    def test_asset_output_without_addresses(self):
        backend = CommandBackend(
            _python("print('unused')"),
            asset_command=_python("print('Asset Manager Address: 0xabc')"),
        )

        with pytest.raises(AssetCreationError) as excinfo:
            backend.create_asset("Cradle USD", "cUSD", "00")
        assert not isinstance(excinfo.value, CommandExecutionError)


class TestCreateBackend:
    def test_simulated_by_default(self):
        backend = create_backend(AppConfig())

        assert isinstance(backend, SimulatedBackend)
        assert backend.next_num == 1001

    def test_command_backend_gets_network_settings(self):
        config = AppConfig()
        config.deployer.backend = "command"
        config.deployer.deploy_command = ["deploy"]
        config.network.operator_account_id = "0.0.2"
        config.network.operator_key = "302e..."

        backend = create_backend(config, {"EXTRA": "1"})

        assert isinstance(backend, CommandBackend)
        assert backend.base_env["OPERATOR_ACCOUNT_ID"] == "0.0.2"
        assert backend.base_env["ALLOW_LIST"] == "1"
        assert backend.base_env["EXTRA"] == "1"

    def test_unknown_backend(self):
        config = AppConfig()
        config.deployer.backend = "carrier-pigeon"

        with pytest.raises(ValueError):
            create_backend(config)
