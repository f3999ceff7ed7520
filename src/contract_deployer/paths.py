"""Unified path constants for Contract Deployer.

Deployment progress lives under the deployer directory:
- deployer/deployment_state.json   # durable deployment state
- .env / .env.backup               # ambient configuration and its backup
- contracts/out/<Name>.sol/<Name>.json   # compiled contract artifacts
"""

from pathlib import Path

# 基础目录（在当前工作目录下）
BASE_DIR = Path("deployer")

STATE_FILE = BASE_DIR / "deployment_state.json"   # 部署进度
ENV_FILE = Path(".env")                            # 环境配置
ARTIFACTS_DIR = Path("contracts") / "out"          # 编译产物


def backup_path_for(env_file: Path) -> Path:
    """Return the backup location used before overwriting ``env_file``."""
    return env_file.with_name(env_file.name + ".backup")


def ensure_parent_dir(path: Path) -> Path:
    """确保文件所在目录存在."""
    path.parent.mkdir(parents=True, exist_ok=True)
    return path
