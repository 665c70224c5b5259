from __future__ import annotations

from pathlib import Path

import pytest

from collector.core.config import DEFAULT_HEADER_MANIFEST, Config
from collector.core.exceptions import ConfigError


def test_default_yaml_loads(test_config: Config) -> None:
    assert test_config.feed_root_url == "https://www.facebook.com/"
    assert test_config.collections.supporters == "supporters"
    assert test_config.headers.manifest == DEFAULT_HEADER_MANIFEST
    assert test_config.storage.enforce_unique_supporters is True
    assert test_config.db_path.name == "collector.db"


def test_missing_file_is_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        Config.from_yaml(tmp_path / "nope.yaml")


def test_invalid_yaml_is_config_error(tmp_path: Path) -> None:
    p = tmp_path / "bad.yaml"
    p.write_text("api: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.from_yaml(p)


def test_env_overrides_nested_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COLLECTOR_API__AUTH_TOKEN", "from-env")
    monkeypatch.setenv("COLLECTOR_SIGNING__ENCODING", "base64")
    c = Config()
    assert c.api.auth_token == "from-env"
    assert c.signing.encoding == "base64"


def test_manifest_must_map_every_pipeline_field() -> None:
    with pytest.raises(ValueError):
        Config(headers={"manifest": {"x-fbtrex-userid": "supporter_id"}})


def test_manifest_header_names_are_lowercased() -> None:
    manifest = {k.upper(): v for k, v in DEFAULT_HEADER_MANIFEST.items()}
    c = Config(headers={"manifest": manifest})
    assert set(c.headers.manifest) == set(DEFAULT_HEADER_MANIFEST)


def test_user_yaml_wins_over_default(tmp_path: Path) -> None:
    cfg = tmp_path / "config"
    cfg.mkdir()
    (cfg / "default.yaml").write_text("feed_root_url: https://default.example/\n", encoding="utf-8")
    (cfg / "user.yaml").write_text("feed_root_url: https://user.example/\n", encoding="utf-8")
    assert Config.from_repo_defaults(tmp_path).feed_root_url == "https://user.example/"
