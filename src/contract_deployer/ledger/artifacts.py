"""Compiled contract artifact loading."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from .errors import DeployError

logger = logging.getLogger(__name__)


@dataclass
class ContractArtifact:
    """Bytecode and ABI of one compiled contract."""

    name: str
    bytecode: str
    abi: List[Any]
    path: Path


class ArtifactLoader:
    """Reads ``<root>/<Name>.sol/<Name>.json`` build outputs."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        return self.root / f"{name}.sol" / f"{name}.json"

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def load(self, name: str) -> ContractArtifact:
        path = self.path_for(name)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise DeployError(name, f"artifact not found at {path}") from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise DeployError(name, f"unreadable artifact {path}: {exc}") from exc

        if not isinstance(payload, dict):
            raise DeployError(name, f"artifact {path} is not a JSON object")
        abi = payload.get("abi")
        bytecode = payload.get("bytecode")
        if not isinstance(abi, list):
            raise DeployError(name, f"artifact {path} has no abi list")
        if not isinstance(bytecode, dict) or not isinstance(bytecode.get("object"), str):
            raise DeployError(name, f"artifact {path} has no bytecode.object")
        if not bytecode["object"]:
            raise DeployError(name, f"artifact {path} has empty bytecode")

        logger.debug(f"Loaded artifact {path} ({len(bytecode['object'])} bytes of bytecode)")
        return ContractArtifact(name=name, bytecode=bytecode["object"], abi=abi, path=path)
