"""End-to-end tests for the deployment orchestrator."""

import pytest

from contract_deployer.ledger import entity_id_to_solidity_address
from contract_deployer.ledger.simulated import SimulatedBackend
from contract_deployer.orchestrator import (
    BOOTSTRAP_ASSETS_HOOK,
    STEP_CATALOG,
    BootstrapAssetHook,
    DeploymentMode,
    DeploymentOrchestrator,
    EnvFileExporter,
    ResumeReconciler,
    ScriptedRetryPolicy,
    StepExecutor,
    StepStatus,
    aggregate_identifiers,
)


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text("OPERATOR_ACCOUNT_ID=0.0.2\nASSET_FACTORY=0.0.1\n", encoding="utf-8")
    return path


def build_orchestrator(store, backend, handler, env_file, decisions=()):
    policy = ScriptedRetryPolicy(decisions)
    executor = StepExecutor(backend, store, handler, policy)
    hook = BootstrapAssetHook(backend, store, handler, policy)
    return DeploymentOrchestrator(
        store=store,
        step_executor=executor,
        interaction_handler=handler,
        hooks={BOOTSTRAP_ASSETS_HOOK: hook},
        exporter=EnvFileExporter(env_file),
    )


class TestFullRun:
    def test_fresh_full_deployment(self, store, backend, handler, ambient, env_file):
        orchestrator = build_orchestrator(store, backend, handler, env_file)

        report = orchestrator.run(store.load(), DeploymentMode.FULL, ambient=ambient)

        assert report.deployed == [s.state_key for s in STEP_CATALOG]
        assert report.failed == []
        assert report.assets_created == ["BASE_ASSET", "YIELD_ASSET"]
        assert report.identifiers["ACCESS_CONTROLLER_CONTRACT_ID"] == "0.0.1001"
        assert report.identifiers["ASSET_FACTORY"] == "0.0.1002"
        # 资产在 Asset Factory 之后、Account Factory 之前创建
        assert report.identifiers["RESERVE_ASSET_ID"] == "0.0.1004"
        assert report.identifiers["CRADLE_ACCOUNT_FACTORY_CONTRACT_ID"] == "0.0.1007"
        assert report.exported is True

        state = store.load()
        assert all(r.status == StepStatus.COMPLETED for r in state.deployments)
        assert all(a.status == StepStatus.COMPLETED for a in state.assets)

    def test_failed_asset_creation_does_not_stop_the_run(self, store, handler, ambient, env_file):
        backend = SimulatedBackend(start=1001, failures={"Cradle USD": 1})
        orchestrator = build_orchestrator(store, backend, handler, env_file, decisions=[False])

        report = orchestrator.run(store.load(), DeploymentMode.FULL, ambient=ambient)

        assert [call[0] for call in backend.asset_calls] == ["Cradle USD"]
        assert report.assets_created == []
        deployed = [name for name, _ in backend.deploy_calls]
        assert deployed == [
            "AccessController",
            "AssetFactory",
            "CradleAccountFactory",
            "CradleOrderBookSettler",
            "LendingPoolFactory",
            "CradleListingFactory",
        ]
        # 发行合约缺少 BASE_ASSET，无法部署
        assert report.failed == ["BRIDGED_ASSET_ISSUER_CONTRACT_ID", "NATIVE_ASSET_ISSUER_CONTRACT_ID"]
        assert orchestrator.step_executor.retry_policy.asked == [
            "Bootstrap asset creation",
            "Bridged Asset Issuer",
            "Native Asset Issuer",
        ]

        state = store.load()
        assert state.find_deployment("CRADLE_ACCOUNT_FACTORY_CONTRACT_ID").is_completed
        assert state.find_deployment("ASSET_LENDING_POOL_FACTORY").is_completed
        assert state.find_asset("BASE_ASSET").status == StepStatus.PENDING

    def test_acl_reference_passed_to_later_steps(self, store, backend, handler, ambient, env_file):
        orchestrator = build_orchestrator(store, backend, handler, env_file)

        orchestrator.run(store.load(), DeploymentMode.FULL, ambient=ambient)

        calls = dict(backend.deploy_calls)
        assert calls["AssetFactory"] == {"acl_contract": "0.0.1001"}
        assert calls["BridgedAssetIssuer"]["base_asset"] == entity_id_to_solidity_address("0.0.1004")
        assert backend.asset_calls[0][2] == "00000000000000000000000000000000000003e9"

    def test_cancel_before_start_changes_nothing(self, store, backend, make_handler, ambient, env_file):
        handler = make_handler(**{"Ready to begin": "no"})
        orchestrator = build_orchestrator(store, backend, handler, env_file)

        report = orchestrator.run(store.load(), DeploymentMode.FULL, ambient=ambient)

        assert report.cancelled
        assert backend.deploy_calls == []
        assert not store.exists()


class TestResume:
    def test_rerun_after_success_deploys_nothing(self, store, backend, handler, ambient, env_file):
        build_orchestrator(store, backend, handler, env_file).run(
            store.load(), DeploymentMode.FULL, ambient=ambient
        )
        first_calls = len(backend.deploy_calls)

        state = store.load()
        reconciliation = ResumeReconciler(store, handler).reconcile(state)
        report = build_orchestrator(store, backend, handler, env_file).run(
            reconciliation.state, DeploymentMode.FULL, reconciliation.identifiers, ambient
        )

        assert len(backend.deploy_calls) == first_calls
        assert report.deployed == []
        assert report.skipped == [s.state_key for s in STEP_CATALOG]
        assert report.identifiers["ASSET_FACTORY"] == "0.0.1002"

    def test_resume_after_failure_reuses_completed_identifiers(self, store, make_handler, ambient, env_file):
        handler = make_handler(**{"Deploy Cradle Account Factory": "no"})
        backend = SimulatedBackend(start=1001)
        first = build_orchestrator(store, backend, handler, env_file).run(
            store.load(), DeploymentMode.CONTRACTS_ONLY, ambient=ambient
        )
        assert "CRADLE_ACCOUNT_FACTORY_CONTRACT_ID" in first.failed

        handler = make_handler()
        reconciliation = ResumeReconciler(store, handler).reconcile(store.load())
        backend.deploy_calls.clear()
        build_orchestrator(store, backend, handler, env_file).run(
            reconciliation.state, DeploymentMode.CONTRACTS_ONLY, reconciliation.identifiers, ambient
        )

        deployed = [name for name, _ in backend.deploy_calls]
        assert "AccessController" not in deployed
        assert "CradleAccountFactory" in deployed
        account_args = dict(backend.deploy_calls)["CradleAccountFactory"]
        assert account_args["acl_contract"] == "0.0.1001"

    def test_redeploy_selected_only_touches_selection(self, store, backend, make_handler, ambient, env_file):
        handler = make_handler()
        build_orchestrator(store, backend, handler, env_file).run(
            store.load(), DeploymentMode.CONTRACTS_ONLY, ambient=ambient
        )
        old_factory = store.load().find_deployment("CRADLE_LISTING_FACTORY_CONTRACT_ID").result_identifier

        handler = make_handler(
            **{"continue": "Redeploy specific contracts", "redeploy": "8"}
        )
        reconciliation = ResumeReconciler(store, handler).reconcile(store.load())
        backend.deploy_calls.clear()
        build_orchestrator(store, backend, handler, env_file).run(
            reconciliation.state, DeploymentMode.CONTRACTS_ONLY, reconciliation.identifiers, ambient
        )

        assert [name for name, _ in backend.deploy_calls] == ["CradleListingFactory"]
        new_factory = store.load().find_deployment("CRADLE_LISTING_FACTORY_CONTRACT_ID").result_identifier
        assert new_factory != old_factory

    def test_redeploying_asset_factory_recreates_assets(self, store, backend, make_handler, ambient, env_file):
        build_orchestrator(store, backend, make_handler(), env_file).run(
            store.load(), DeploymentMode.FULL, ambient=ambient
        )
        old_base = store.load().find_asset("BASE_ASSET").result_identifier

        handler = make_handler(
            **{"continue": "Redeploy specific contracts", "redeploy": "2"}
        )
        reconciliation = ResumeReconciler(store, handler).reconcile(store.load())
        backend.deploy_calls.clear()
        backend.asset_calls.clear()
        report = build_orchestrator(store, backend, handler, env_file).run(
            reconciliation.state, DeploymentMode.FULL, reconciliation.identifiers, ambient
        )

        assert [name for name, _ in backend.deploy_calls] == ["AssetFactory"]
        assert [call[0] for call in backend.asset_calls] == ["Cradle USD", "Cradle Yield"]
        assert report.assets_created == ["BASE_ASSET", "YIELD_ASSET"]
        # 第一次运行占用 0.0.1001-0.0.1012，新工厂为 0.0.1013
        assert report.identifiers["ASSET_FACTORY"] == "0.0.1013"
        assert report.identifiers["BASE_ASSET"] == entity_id_to_solidity_address("0.0.1015")
        assert report.identifiers["BASE_ASSET"] != old_base
        assert report.identifiers["RESERVE_ASSET_ID"] == "0.0.1015"
        assert report.identifiers["YIELD_ASSET"] == entity_id_to_solidity_address("0.0.1017")

        state = store.load()
        assert all(a.status == StepStatus.COMPLETED for a in state.assets)
        assert state.find_asset("BASE_ASSET").result_identifier == entity_id_to_solidity_address("0.0.1015")

    def test_resumed_factory_only_creates_missing_assets(self, store, make_handler, ambient, env_file):
        backend = SimulatedBackend(start=1001, failures={"Cradle Yield": 1})
        build_orchestrator(store, backend, make_handler(), env_file, decisions=[False]).run(
            store.load(), DeploymentMode.FULL, ambient=ambient
        )
        assert store.load().find_asset("BASE_ASSET").is_completed
        assert not store.load().find_asset("YIELD_ASSET").is_completed

        handler = make_handler()
        reconciliation = ResumeReconciler(store, handler).reconcile(store.load())
        backend.deploy_calls.clear()
        backend.asset_calls.clear()
        report = build_orchestrator(store, backend, handler, env_file).run(
            reconciliation.state, DeploymentMode.FULL, reconciliation.identifiers, ambient
        )

        assert [call[0] for call in backend.asset_calls] == ["Cradle Yield"]
        assert report.assets_created == ["YIELD_ASSET"]
        assert "ASSET_FACTORY" in report.skipped


class TestModes:
    def test_contracts_only_never_creates_assets(self, store, backend, handler, ambient, env_file):
        report = build_orchestrator(store, backend, handler, env_file).run(
            store.load(), DeploymentMode.CONTRACTS_ONLY, ambient=ambient
        )

        assert backend.asset_calls == []
        assert report.assets_created == []
        # 发行合约依赖 BASE_ASSET，未创建资产时部署失败
        assert "BRIDGED_ASSET_ISSUER_CONTRACT_ID" in report.failed
        assert "NATIVE_ASSET_ISSUER_CONTRACT_ID" in report.failed

    def test_assets_only_after_contracts(self, store, backend, handler, ambient, env_file):
        build_orchestrator(store, backend, handler, env_file).run(
            store.load(), DeploymentMode.CONTRACTS_ONLY, ambient=ambient
        )
        calls_before = len(backend.deploy_calls)

        state = store.load()
        report = build_orchestrator(store, backend, handler, env_file).run(
            state, DeploymentMode.ASSETS_ONLY, state.completed_identifiers(), ambient
        )

        assert len(backend.deploy_calls) == calls_before
        assert report.assets_created == ["BASE_ASSET", "YIELD_ASSET"]

    def test_assets_only_without_factory_is_not_an_error(self, store, backend, handler, ambient, env_file):
        report = build_orchestrator(store, backend, handler, env_file).run(
            store.load(), DeploymentMode.ASSETS_ONLY, ambient=ambient
        )

        assert backend.deploy_calls == []
        assert backend.asset_calls == []
        assert report.assets_created == []

    def test_declined_factory_never_runs_hook(self, store, backend, make_handler, ambient, env_file):
        handler = make_handler(**{"Deploy Asset Factory": "no"})

        report = build_orchestrator(store, backend, handler, env_file).run(
            store.load(), DeploymentMode.FULL, ambient=ambient
        )

        assert "ASSET_FACTORY" in report.failed
        assert backend.asset_calls == []


class TestExport:
    def test_env_file_updated_with_every_identifier(self, store, backend, handler, ambient, env_file):
        report = build_orchestrator(store, backend, handler, env_file).run(
            store.load(), DeploymentMode.FULL, ambient=ambient
        )

        text = env_file.read_text(encoding="utf-8")
        for key, value in report.identifiers.items():
            assert f"{key}={value}" in text
        assert "OPERATOR_ACCOUNT_ID=0.0.2" in text
        assert "ASSET_FACTORY=0.0.1\n" not in text
        backup = env_file.with_name(".env.backup")
        assert backup.read_text(encoding="utf-8").startswith("OPERATOR_ACCOUNT_ID=0.0.2")

    def test_declined_export_leaves_env_file(self, store, backend, make_handler, ambient, env_file):
        handler = make_handler(**{"Update .env": "no"})
        before = env_file.read_text(encoding="utf-8")

        report = build_orchestrator(store, backend, handler, env_file).run(
            store.load(), DeploymentMode.FULL, ambient=ambient
        )

        assert report.exported is None
        assert env_file.read_text(encoding="utf-8") == before

    def test_export_failure_is_reported_not_raised(self, store, backend, handler, ambient, tmp_path):
        directory_as_env = tmp_path / "not-a-file"
        directory_as_env.mkdir()

        report = build_orchestrator(store, backend, handler, directory_as_env).run(
            store.load(), DeploymentMode.FULL, ambient=ambient
        )

        assert report.exported is False
        assert report.export_error
        assert store.load().find_deployment("ASSET_FACTORY").is_completed


def test_aggregate_identifiers_prefers_run_values(store):
    state = store.create_initial_state()
    store.update_deployment_status(state, "ASSET_FACTORY", StepStatus.COMPLETED, "0.0.1002")

    merged = aggregate_identifiers(state, {"ASSET_FACTORY": "0.0.2002", "BASE_ASSET_MANAGER": "abc"})

    assert merged == {"ASSET_FACTORY": "0.0.2002", "BASE_ASSET_MANAGER": "abc"}
