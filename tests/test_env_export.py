"""Tests for the .env exporter."""

import pytest

from contract_deployer.orchestrator import EnvExportError, EnvFileExporter
from contract_deployer.orchestrator.env_export import format_env_lines


class TestEnvFileExporter:
    def test_replaces_existing_and_appends_new_keys(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("NETWORK=testnet\nASSET_FACTORY=0.0.1\n", encoding="utf-8")

        written = EnvFileExporter(env_file).export({"ASSET_FACTORY": "0.0.1002", "BASE_ASSET": "abc"})

        assert written == ["ASSET_FACTORY", "BASE_ASSET"]
        lines = env_file.read_text(encoding="utf-8").splitlines()
        assert "NETWORK=testnet" in lines
        assert "ASSET_FACTORY=0.0.1002" in lines
        assert "BASE_ASSET=abc" in lines
        assert "ASSET_FACTORY=0.0.1" not in lines

    def test_backup_written_before_update(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("NETWORK=testnet\n", encoding="utf-8")
        exporter = EnvFileExporter(env_file)

        exporter.export({"NETWORK": "mainnet"})

        assert exporter.backup_file == tmp_path / ".env.backup"
        assert exporter.backup_file.read_text(encoding="utf-8") == "NETWORK=testnet\n"

    def test_creates_missing_env_file(self, tmp_path):
        env_file = tmp_path / "nested" / ".env"

        EnvFileExporter(env_file).export({"ASSET_FACTORY": "0.0.1002"})

        assert "ASSET_FACTORY=0.0.1002" in env_file.read_text(encoding="utf-8")
        assert not (tmp_path / "nested" / ".env.backup").exists()

    def test_unwritable_target_raises_export_error(self, tmp_path):
        with pytest.raises(EnvExportError):
            EnvFileExporter(tmp_path).export({"ASSET_FACTORY": "0.0.1002"})


def test_format_env_lines():
    assert format_env_lines({"A": "1", "B": "2"}) == ["A=1", "B=2"]
