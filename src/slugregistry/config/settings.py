# slugregistry/config/settings.py

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from slugregistry.domain.reserved import DEFAULT_RESERVED_SLUGS

DEFAULT_DB_URL = "sqlite:///data/slugregistry.db"


@dataclass
class DatabaseConfig:
    """数据库配置"""
    url: str = DEFAULT_DB_URL
    timeout: int = 30
    echo: bool = False


@dataclass
class SlugConfig:
    """slug 注册配置"""
    reserved: Tuple[str, ...] = field(default_factory=lambda: tuple(DEFAULT_RESERVED_SLUGS))
    max_suffix_attempts: int = 20
    schema_auto_ensure: bool = True
    ensure_cooldown_seconds: float = 60.0


@dataclass
class LoggingConfig:
    """日志配置"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    slugs: SlugConfig = field(default_factory=SlugConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def apply_env_overrides(settings: Settings) -> Settings:
    """Environment wins over file values."""
    env = os.environ
    if env.get("SLUGREG_DB_URL"):
        settings.database.url = env["SLUGREG_DB_URL"]
    if "SLUGREG_RESERVED_SLUGS" in env:
        settings.slugs.reserved = tuple(
            part.strip() for part in env["SLUGREG_RESERVED_SLUGS"].split(",") if part.strip()
        )
    if env.get("SLUGREG_SCHEMA_AUTO_ENSURE"):
        settings.slugs.schema_auto_ensure = _env_bool(env["SLUGREG_SCHEMA_AUTO_ENSURE"])
    if env.get("SLUGREG_ENSURE_COOLDOWN"):
        settings.slugs.ensure_cooldown_seconds = float(env["SLUGREG_ENSURE_COOLDOWN"])
    if env.get("SLUGREG_MAX_SUFFIX_ATTEMPTS"):
        settings.slugs.max_suffix_attempts = int(env["SLUGREG_MAX_SUFFIX_ATTEMPTS"])
    if env.get("SLUGREG_LOG_LEVEL"):
        settings.logging.level = env["SLUGREG_LOG_LEVEL"].upper()
    return settings


def load_settings(path: Optional[str] = None) -> Settings:
    """
    加载配置：YAML 文件（可选，经 pydantic 校验）+ 环境变量覆盖。

    Args:
        path: 配置文件路径，缺省读取 SLUGREG_CONFIG

    Returns:
        Settings
    """
    config_path = path or os.getenv("SLUGREG_CONFIG")
    if config_path and Path(config_path).exists():
        from .validated_settings import load_validated_settings

        settings = load_validated_settings(Path(config_path))
    else:
        settings = Settings()
    return apply_env_overrides(settings)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.logging.level.upper(), logging.INFO),
        format=settings.logging.format,
    )
