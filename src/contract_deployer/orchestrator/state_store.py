"""Deployment State Store: durable, resumable record of deployment progress.

The state file is a human-readable JSON document. It is rewritten in full after
every status change through a temporary file and an atomic rename, so a crash
mid-write leaves the previous valid file in place.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .. import paths
from .catalog import BOOTSTRAP_ASSET_NAMES, STEP_CATALOG, validate_catalog
from .models import (
    BootstrapAssetRecord,
    ContractDeploymentRecord,
    DeploymentState,
    DeploymentStep,
    StepStatus,
    utc_now,
)

logger = logging.getLogger(__name__)


class StateFileCorruptError(RuntimeError):
    """Raised when an existing state file cannot be read back.

    Never handled by falling back to a fresh state: that would redeploy work
    that has already been paid for on the network.
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Deployment state file {path} is unusable: {reason}")


class DeploymentStateStore:
    """Loads, initializes and persists :class:`DeploymentState`."""

    def __init__(
        self,
        path: Optional[Path] = None,
        steps: Iterable[DeploymentStep] = STEP_CATALOG,
        asset_names: Sequence[str] = BOOTSTRAP_ASSET_NAMES,
    ) -> None:
        self.path = Path(path) if path else paths.STATE_FILE
        self.steps = validate_catalog(steps)
        self.asset_names = tuple(asset_names)

    def exists(self) -> bool:
        return self.path.is_file()

    def create_initial_state(self) -> DeploymentState:
        """Canonical initial state: every step and asset pending, no identifiers."""
        now = utc_now()
        return DeploymentState(
            started_at=now,
            last_updated=now,
            deployments=[ContractDeploymentRecord.pending(step) for step in self.steps],
            assets=[BootstrapAssetRecord(name=name) for name in self.asset_names],
        )

    def load(self) -> DeploymentState:
        """Read the state file, or synthesize the initial state when there is none."""
        if not self.exists():
            logger.debug(f"No state file at {self.path}, starting from the initial state")
            return self.create_initial_state()

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StateFileCorruptError(self.path, str(exc)) from exc

        if not isinstance(payload, dict):
            raise StateFileCorruptError(self.path, "top-level value is not an object")

        try:
            state = DeploymentState.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise StateFileCorruptError(self.path, f"invalid structure ({exc!r})") from exc

        self._check_records(state)
        self._add_missing_records(state)
        logger.debug(f"Loaded deployment state from {self.path}")
        return state

    def persist(self, state: DeploymentState) -> None:
        """Stamp ``last_updated`` and atomically rewrite the whole state file."""
        state.last_updated = utc_now()
        content = json.dumps(state.to_dict(), indent=2, ensure_ascii=False)

        paths.ensure_parent_dir(self.path)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"💾 State saved to {self.path}")

    def update_deployment_status(
        self,
        state: DeploymentState,
        state_key: str,
        status: StepStatus,
        identifier: Optional[str] = None,
    ) -> bool:
        """Update one deployment record in place; returns False for an unknown key."""
        record = state.find_deployment(state_key)
        if record is None:
            logger.warning(f"Unknown deployment state key {state_key}, nothing updated")
            return False
        record.status = status
        record.result_identifier = _identifier_for(status, identifier, state_key)
        return True

    def update_asset_status(
        self,
        state: DeploymentState,
        name: str,
        status: StepStatus,
        identifier: Optional[str] = None,
    ) -> bool:
        """Update one bootstrap asset record in place; returns False for an unknown name."""
        record = state.find_asset(name)
        if record is None:
            logger.warning(f"Unknown bootstrap asset {name}, nothing updated")
            return False
        record.status = status
        record.result_identifier = _identifier_for(status, identifier, name)
        return True

    def _check_records(self, state: DeploymentState) -> None:
        keys = [r.state_key for r in state.deployments]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise StateFileCorruptError(self.path, f"duplicate state keys {duplicates}")
        orders = [r.order for r in state.deployments]
        if len(set(orders)) != len(orders):
            raise StateFileCorruptError(self.path, "duplicate step orders")
        names = [a.name for a in state.assets]
        if len(set(names)) != len(names):
            raise StateFileCorruptError(self.path, "duplicate asset names")

        for label, status, identifier in [
            *((r.state_key, r.status, r.result_identifier) for r in state.deployments),
            *((a.name, a.status, a.result_identifier) for a in state.assets),
        ]:
            if status == StepStatus.COMPLETED and not identifier:
                raise StateFileCorruptError(self.path, f"{label} is completed without an identifier")
            if status != StepStatus.COMPLETED and identifier:
                raise StateFileCorruptError(
                    self.path, f"{label} has identifier {identifier} but status {status.value}"
                )

    def _add_missing_records(self, state: DeploymentState) -> None:
        for step in self.steps:
            if state.find_deployment(step.state_key) is None:
                logger.warning(f"State file has no record for {step.name}, adding it as pending")
                state.deployments.append(ContractDeploymentRecord.pending(step))
        state.deployments.sort(key=lambda r: r.order)
        for name in self.asset_names:
            if state.find_asset(name) is None:
                state.assets.append(BootstrapAssetRecord(name=name))


def _identifier_for(status: StepStatus, identifier: Optional[str], label: str) -> Optional[str]:
    if status == StepStatus.COMPLETED:
        if not identifier:
            raise ValueError(f"{label} cannot be completed without an identifier")
        return identifier
    return None
