"""
CLI 入口点

提供 slug 注册表的运维命令：探测/补齐表结构、查询、分配、重命名、回填。
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Optional

from slugregistry import __version__
from slugregistry.application.alias_resolver import AliasResolver
from slugregistry.application.registries.backfill import backfill_fallback_claims
from slugregistry.application.registries.slug_registry import SlugRegistry
from slugregistry.config.settings import configure_logging, load_settings
from slugregistry.core.errors import SlugRegistryError


def create_parser() -> argparse.ArgumentParser:
    """创建 CLI 参数解析器"""
    parser = argparse.ArgumentParser(
        prog="slugregistry",
        description="Slug Registry - 个人主页 slug 管理",
    )
    parser.add_argument("--db-url", default=None, help="覆盖 SLUGREG_DB_URL")
    parser.add_argument("--config", "-c", default=None, help="配置文件路径 (YAML)")
    parser.add_argument("--no-ensure", action="store_true", help="禁止运行时补齐表结构")
    parser.add_argument("--version", "-v", action="store_true", help="显示版本")

    subparsers = parser.add_subparsers(dest="command", help="可用命令")

    subparsers.add_parser("probe", help="探测主存储表结构能力")
    subparsers.add_parser("ensure-schema", help="补齐 public_slug 列、唯一索引与别名表")

    check_parser = subparsers.add_parser("check", help="查询 slug 是否可用")
    check_parser.add_argument("slug")
    check_parser.add_argument("--user-id", default=None, help="请求者 ID，用于判断是否已拥有")

    assign_parser = subparsers.add_parser("assign", help="为新注册用户分配 slug")
    assign_parser.add_argument("owner")
    assign_parser.add_argument("seed", help="显示名或邮箱")

    rename_parser = subparsers.add_parser("rename", help="重命名用户 slug")
    rename_parser.add_argument("owner")
    rename_parser.add_argument("slug")

    clear_parser = subparsers.add_parser("clear", help="清除用户 slug")
    clear_parser.add_argument("owner")

    resolve_parser = subparsers.add_parser("resolve", help="解析旧 slug 的重定向目标")
    resolve_parser.add_argument("slug")

    backfill_parser = subparsers.add_parser("backfill", help="将降级期间写入键值表的 slug 回填到主表")
    backfill_parser.add_argument("--dry-run", action="store_true", help="只统计不写入")

    return parser


def _emit(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def run_cli(args: Optional[list] = None) -> int:
    """
    运行 CLI

    Args:
        args: 命令行参数（默认使用 sys.argv）

    Returns:
        退出码
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.version:
        print(f"slugregistry v{__version__}")
        return 0

    if not parsed.command:
        parser.print_help()
        return 0

    settings = load_settings(parsed.config)
    if parsed.db_url:
        settings.database.url = parsed.db_url
    if parsed.no_ensure:
        settings.slugs.schema_auto_ensure = False
    configure_logging(settings)

    registry = SlugRegistry.from_settings(settings)
    router = registry.router

    try:
        if parsed.command == "probe":
            _emit(router.detector.probe().to_dict())
        elif parsed.command == "ensure-schema":
            ready = router.detector.ensure_schema()
            _emit({"primary_ready": ready})
            return 0 if ready else 1
        elif parsed.command == "check":
            _emit(registry.check_availability(parsed.slug, requester=parsed.user_id).to_dict())
        elif parsed.command == "assign":
            slug = registry.assign_on_registration(parsed.owner, parsed.seed)
            _emit({"owner": parsed.owner, "public_slug": slug})
            return 0 if slug else 1
        elif parsed.command == "rename":
            result = registry.rename(parsed.owner, parsed.slug)
            if not result.is_ok():
                error = result.error
                _emit({"error": error.message, "code": error.code, "current_owner": error.current_owner})
                return 2
            outcome = result.unwrap()
            _emit({"public_slug": outcome.slug, "previous_slug": outcome.previous_slug, "unchanged": outcome.unchanged})
        elif parsed.command == "clear":
            _emit({"owner": parsed.owner, "released": registry.clear(parsed.owner)})
        elif parsed.command == "resolve":
            resolution = AliasResolver(router).resolve(parsed.slug)
            _emit({"slug": resolution.slug, "redirect_to": resolution.redirect_to})
        elif parsed.command == "backfill":
            if not router.detector.ensure_schema():
                _emit({"error": "primary slug schema not ready"})
                return 1
            report = backfill_fallback_claims(router.primary, router.fallback, dry_run=parsed.dry_run)
            _emit(report.to_dict())
    except SlugRegistryError as e:
        print(f"错误: {e}", file=sys.stderr)
        return 1
    return 0


def main() -> int:
    return run_cli()


if __name__ == "__main__":
    sys.exit(main())
