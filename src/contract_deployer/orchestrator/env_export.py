"""Writes the resolved identifiers back to the ambient ``.env`` file."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import set_key

from .. import paths

logger = logging.getLogger(__name__)


class EnvExportError(RuntimeError):
    """Raised when the identifiers could not be written to the env file."""

    def __init__(self, env_file: Path, reason: str) -> None:
        self.env_file = env_file
        self.reason = reason
        super().__init__(f"Failed to update {env_file}: {reason}")


class EnvFileExporter:
    """
    Updates ``KEY=value`` lines in the env file.

    Existing keys are replaced in place, new keys are appended. The previous
    file is copied to ``<env_file>.backup`` first.
    """

    def __init__(self, env_file: Optional[Path] = None) -> None:
        self.env_file = Path(env_file) if env_file else paths.ENV_FILE

    @property
    def backup_file(self) -> Path:
        return paths.backup_path_for(self.env_file)

    def export(self, identifiers: Dict[str, str]) -> List[str]:
        """
        Write every identifier to the env file.

        Returns:
            The keys written, in order

        Raises:
            EnvExportError: If the backup or any write fails
        """
        written: List[str] = []
        try:
            if self.env_file.exists():
                shutil.copy2(self.env_file, self.backup_file)
                logger.info(f"💾 Backed up {self.env_file} to {self.backup_file}")
            else:
                paths.ensure_parent_dir(self.env_file)
                self.env_file.touch()

            for key, value in identifiers.items():
                set_key(str(self.env_file), key, value, quote_mode="never")
                written.append(key)
        except OSError as exc:
            raise EnvExportError(self.env_file, str(exc)) from exc

        logger.info(f"✅ Updated {len(written)} entries in {self.env_file}")
        return written


def format_env_lines(identifiers: Dict[str, str]) -> List[str]:
    """``KEY=value`` lines for manual transcription."""
    return [f"{key}={value}" for key, value in identifiers.items()]
