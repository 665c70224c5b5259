from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest

# pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from collector.core.config import Config  # noqa: E402
from collector.pipeline import open_database  # noqa: E402


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def test_config(temp_dir: Path) -> Config:
    """Config fixture that points data_dir to a temp directory."""

    cfg_dst_dir = temp_dir / "config"
    cfg_dst_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy2(REPO_ROOT / "config" / "default.yaml", cfg_dst_dir / "default.yaml")

    c = Config.from_yaml(cfg_dst_dir / "default.yaml")
    api = c.api.model_copy(update={"auth_token": "test-token"})
    return c.model_copy(update={"data_dir": temp_dir / "data", "config_dir": cfg_dst_dir, "api": api})


@pytest.fixture()
def db(test_config: Config):
    d = open_database(test_config)
    try:
        yield d
    finally:
        d.close()
