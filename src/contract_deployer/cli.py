"""Command-line interface for Contract Deployer."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .config import AppConfig, load_ambient, load_config
from .interaction import (
    CLIInteractionHandler,
    InputType,
    InteractionRequest,
    QuestionCategory,
    UserInteractionHandler,
)
from .ledger import DeployerError, create_backend
from .orchestrator import (
    BOOTSTRAP_ASSETS_HOOK,
    BootstrapAssetHook,
    DeploymentMode,
    DeploymentOrchestrator,
    DeploymentStateStore,
    EnvFileExporter,
    ResumeReconciler,
    StateFileCorruptError,
    StepExecutor,
)
from .utils.logging import get_logger


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config: AppConfig
    state_file: Path
    env_file: Path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contract-deployer",
        description="Deploy the contract suite to a ledger network, resumably.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy_parser = subparsers.add_parser(
        "deploy", help="Run the interactive deployment (resumes earlier progress)"
    )
    deploy_parser.add_argument("--state-file", type=str, default=None, help="Deployment state file")
    deploy_parser.add_argument("--env-file", type=str, default=None, help=".env file to read and update")
    deploy_parser.add_argument(
        "--backend", choices=["command", "simulated"], default=None,
        help="Deployment backend (overrides config)",
    )

    # status 子命令 - 查看部署进度
    status_parser = subparsers.add_parser(
        "status", help="Show the recorded deployment progress"
    )
    status_parser.add_argument("--state-file", type=str, default=None, help="Deployment state file")

    # deploy-one 子命令 - 单独部署一个合约，不记录状态
    one_parser = subparsers.add_parser(
        "deploy-one", help="Deploy a single contract artifact without touching the state file"
    )
    one_parser.add_argument("name", help="Artifact name, e.g. AccessController")
    one_parser.add_argument(
        "--arg", action="append", default=[], metavar="KEY=VALUE", dest="constructor_args",
        help="Constructor argument (repeatable)",
    )
    one_parser.add_argument(
        "--backend", choices=["command", "simulated"], default=None,
        help="Deployment backend (overrides config)",
    )

    return parser


def _build_context(args: argparse.Namespace) -> CLIContext:
    config = load_config(args.config)
    backend = getattr(args, "backend", None)
    if backend:
        config.deployer.backend = backend
        config.validate()
    state_file = getattr(args, "state_file", None) or config.deployer.state_file
    env_file = getattr(args, "env_file", None) or config.deployer.env_file
    return CLIContext(
        config=config,
        state_file=Path(state_file),
        env_file=Path(env_file),
    )


def _parse_constructor_args(raw: List[str]) -> Dict[str, str]:
    args: Dict[str, str] = {}
    for item in raw:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"Constructor argument must look like KEY=VALUE, got {item!r}")
        args[key] = value
    return args


def choose_mode(handler: UserInteractionHandler) -> Optional[DeploymentMode]:
    """Ask which part of the catalog to run; None when the prompt was cancelled."""
    modes = list(DeploymentMode)
    labels = [m.label for m in modes]
    response = handler.ask(
        InteractionRequest(
            question="Select deployment mode:",
            input_type=InputType.CHOICE,
            options=labels,
            category=QuestionCategory.DECISION,
            default=labels[0],
        )
    )
    if response.cancelled or response.selected_option is None:
        return None
    return modes[response.selected_option - 1]


def handle_status_command(context: CLIContext) -> int:
    """Handle the status subcommand."""
    store = DeploymentStateStore(context.state_file)
    if not store.exists():
        print(f"📁 No deployment state found at {store.path}. Run a deployment first.")
        return 0

    try:
        state = store.load()
    except StateFileCorruptError as exc:
        print(f"❌ {exc}")
        return 1

    status_emoji = {"completed": "✅", "failed": "❌", "inprogress": "🔄", "pending": "·"}

    print(f"\n{'='*60}")
    print(f"📄 Deployment State: {store.path}")
    print(f"{'='*60}")
    print(f"⏰ Started:      {state.started_at}")
    print(f"⏱️  Last update:  {state.last_updated}")
    print(f"{'='*60}\n")

    for record in state.deployments:
        emoji = status_emoji.get(record.status.value, "❓")
        identifier = record.result_identifier or ""
        print(f"{record.order:<3} {emoji} {record.status.value:<11} {record.name:<28} {identifier}")

    print("\nBootstrap assets:")
    for asset in state.assets:
        emoji = status_emoji.get(asset.status.value, "❓")
        identifier = asset.result_identifier or ""
        print(f"    {emoji} {asset.status.value:<11} {asset.name:<28} {identifier}")
    print()
    return 0


def handle_deploy_one_command(args: argparse.Namespace, context: CLIContext) -> int:
    """Handle the deploy-one subcommand."""
    ambient = load_ambient(str(context.env_file))
    backend = create_backend(context.config, ambient)
    try:
        contract_id = backend.deploy_contract(args.name, _parse_constructor_args(args.constructor_args))
    except DeployerError as exc:
        print(f"❌ {exc}")
        return 1
    print(f"✅ {args.name} deployed")
    print(f"Contract id: {contract_id}")
    return 0


def handle_deploy_command(
    context: CLIContext,
    handler: Optional[UserInteractionHandler] = None,
) -> int:
    """Handle the deploy subcommand: reconcile, choose a mode, run the catalog."""
    config = context.config
    handler = handler or CLIInteractionHandler(use_rich=config.interaction.use_rich)

    ambient = load_ambient(str(context.env_file))
    ambient.setdefault("ALLOW_LIST", str(config.network.allow_list))
    backend = create_backend(config, ambient)

    store = DeploymentStateStore(context.state_file)
    try:
        state = store.load()
    except StateFileCorruptError as exc:
        print(f"❌ {exc}")
        print("   Fix or move the file away, then run again.")
        return 1

    reconciliation = ResumeReconciler(store, handler).reconcile(state)

    mode = choose_mode(handler)
    if mode is None:
        print("❌ Cancelled")
        return 0

    executor = StepExecutor(backend, store, handler)
    hooks = {BOOTSTRAP_ASSETS_HOOK: BootstrapAssetHook(backend, store, handler)}
    orchestrator = DeploymentOrchestrator(
        store=store,
        step_executor=executor,
        interaction_handler=handler,
        hooks=hooks,
        exporter=EnvFileExporter(context.env_file),
    )
    orchestrator.run(
        reconciliation.state,
        mode=mode,
        identifiers=reconciliation.identifiers,
        ambient=ambient,
    )
    return 0


def dispatch_command(args: argparse.Namespace) -> int:
    get_logger(verbose=args.verbose)
    context = _build_context(args)

    if args.command == "status":
        return handle_status_command(context)

    if args.command == "deploy-one":
        return handle_deploy_one_command(args, context)

    if args.command == "deploy":
        return handle_deploy_command(context)

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return dispatch_command(args)
