"""collector.core.config

Two config surfaces only:
1) `config/default.yaml` (or `config/user.yaml` when present)
2) Environment variables, `COLLECTOR_` prefix, `__` for nesting

Everything else is derived.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from collector.core.exceptions import ConfigError

FEED_ROOT_URL = "https://www.facebook.com/"

DEFAULT_HEADER_MANIFEST: dict[str, str] = {
    "content-length": "length",
    "x-fbtrex-build": "build",
    "x-fbtrex-version": "version",
    "x-fbtrex-userid": "supporter_id",
    "x-fbtrex-publickey": "public_key",
    "x-fbtrex-signature": "signature",
}


class CollectionsConfig(BaseModel):
    """Logical collection name -> physical table name."""

    supporters: str = "supporters"
    timelines: str = "timelines2"
    impressions: str = "impressions2"
    htmls: str = "htmls2"
    alarms: str = "alarms"

    def all(self) -> list[str]:
        return [self.supporters, self.timelines, self.impressions, self.htmls, self.alarms]


class StorageConfig(BaseModel):
    db_file: str = "collector.db"
    enforce_unique_supporters: bool = True


class SigningConfig(BaseModel):
    encoding: Literal["hex", "base64"] = "hex"


class HeadersConfig(BaseModel):
    manifest: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HEADER_MANIFEST))

    @field_validator("manifest")
    @classmethod
    def manifest_must_cover_pipeline_fields(cls, v: dict[str, str]) -> dict[str, str]:
        required = set(DEFAULT_HEADER_MANIFEST.values())
        missing = required - set(v.values())
        if missing:
            raise ValueError(f"header manifest does not map: {sorted(missing)}")
        return {str(k).lower(): str(f) for k, f in v.items()}


class GeoIPConfig(BaseModel):
    networks: dict[str, str] = Field(default_factory=dict)


class AlarmsConfig(BaseModel):
    webhook_url: str = ""
    timeout_s: float = 3.0


class LoggingConfig(BaseModel):
    level: str = "INFO"


class ApiConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8100
    auth_token: str = ""
    cors_origins: list[str] = Field(default_factory=list)


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    data_dir: Path = Path("data")
    config_dir: Path = Path("config")
    feed_root_url: str = FEED_ROOT_URL

    collections: CollectionsConfig = Field(default_factory=CollectionsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    signing: SigningConfig = Field(default_factory=SigningConfig)
    headers: HeadersConfig = Field(default_factory=HeadersConfig)
    geoip: GeoIPConfig = Field(default_factory=GeoIPConfig)
    alarms: AlarmsConfig = Field(default_factory=AlarmsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = {"env_prefix": "COLLECTOR_", "env_nested_delimiter": "__"}

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.storage.db_file

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {path}") from e

        raw.setdefault("config_dir", str(path.parent))
        return cls(**raw)

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None) -> Config:
        root = repo_root or Path.cwd()
        user_path = root / "config" / "user.yaml"
        if user_path.exists():
            return cls.from_yaml(user_path)
        return cls.from_yaml(root / "config" / "default.yaml")
