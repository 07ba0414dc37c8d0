"""
基于 pydantic 的配置校验与对象化加载。

提供 SettingsModel（忽略多余字段），并转换为 dataclass Settings。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from slugregistry.domain.reserved import DEFAULT_RESERVED_SLUGS

from .settings import DEFAULT_DB_URL, DatabaseConfig, LoggingConfig, Settings, SlugConfig


class DatabaseConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str = DEFAULT_DB_URL
    timeout: int = Field(30, ge=1)
    echo: bool = False


class SlugConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reserved: List[str] = Field(default_factory=lambda: list(DEFAULT_RESERVED_SLUGS))
    max_suffix_attempts: int = Field(20, ge=1, le=1000)
    schema_auto_ensure: bool = True
    ensure_cooldown_seconds: float = Field(60.0, ge=0)

    @field_validator("reserved", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class LoggingConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SettingsModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    database: DatabaseConfigModel = Field(default_factory=DatabaseConfigModel)
    slugs: SlugConfigModel = Field(default_factory=SlugConfigModel)
    logging: LoggingConfigModel = Field(default_factory=LoggingConfigModel)

    def to_settings(self) -> Settings:
        return Settings(
            database=DatabaseConfig(**self.database.model_dump()),
            slugs=SlugConfig(
                reserved=tuple(self.slugs.reserved),
                max_suffix_attempts=self.slugs.max_suffix_attempts,
                schema_auto_ensure=self.slugs.schema_auto_ensure,
                ensure_cooldown_seconds=self.slugs.ensure_cooldown_seconds,
            ),
            logging=LoggingConfig(**self.logging.model_dump()),
        )


def load_validated_settings(path: Path) -> Settings:
    raw: Dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return SettingsModel(**raw).to_settings()
