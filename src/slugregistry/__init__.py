# slugregistry/__init__.py
"""
Slug Registry - 个人主页短链接（slug）注册服务

- 注册时自动分配唯一 slug
- 重命名并保留旧链接的单跳重定向（alias）
- 主表结构未迁移时自动降级到 app_settings 键值表
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Slug Registry Team"
