"""
Profile flows that touch the slug registry: registration, slug updates and
public profile lookup by path segment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from slugregistry.application.alias_resolver import AliasResolver
from slugregistry.application.registries.slug_registry import SlugRegistry
from slugregistry.infrastructure.stores.profile_store import SqlAlchemyProfileStore

logger = logging.getLogger(__name__)


@dataclass
class PublicProfileLookup:
    profile: Optional[Dict[str, Any]] = None
    redirect_to: Optional[str] = None


class ProfileService:
    def __init__(self, profiles: SqlAlchemyProfileStore, registry: SlugRegistry, resolver: AliasResolver):
        self.profiles = profiles
        self.registry = registry
        self.resolver = resolver

    def register(
        self,
        *,
        email: str,
        full_name: Optional[str] = None,
        public_profile_enabled: bool = False,
    ) -> Dict[str, Any]:
        profile = self.profiles.create_profile(
            email=email,
            full_name=full_name,
            public_profile_enabled=public_profile_enabled,
        )
        # a missing slug never fails registration; the owner can claim one later
        slug = self.registry.assign_on_registration(profile["id"], full_name or email.split("@", 1)[0], email=email)
        if slug is None:
            logger.warning("profile %s registered without a public slug", profile["id"])
        profile["public_slug"] = slug
        return profile

    def get_profile(self, owner: str) -> Optional[Dict[str, Any]]:
        profile = self.profiles.get_profile(owner)
        return self.registry.annotate(profile) if profile else None

    def update_slug(self, owner: str, public_slug: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Apply a user-submitted slug. ``None``/blank clears it.

        Raises SlugConflictError (HTTP 409), ReservedSlugError, InvalidSlugError.
        """
        profile = self.profiles.get_profile(owner)
        if profile is None:
            return None
        if public_slug is None or not public_slug.strip():
            self.registry.clear(owner)
        else:
            self.registry.rename(owner, public_slug).unwrap()
        return self.registry.annotate(profile)

    def set_public_profile(self, owner: str, enabled: bool) -> Optional[Dict[str, Any]]:
        """Toggle the public page; ``None`` when the owner has no profile."""
        if not self.profiles.set_public_profile_enabled(owner, enabled):
            return None
        return self.get_profile(owner)

    def public_profile(self, segment: str) -> PublicProfileLookup:
        resolution = self.resolver.resolve(segment)
        if not resolution.slug:
            return PublicProfileLookup()
        if resolution.is_redirect:
            return PublicProfileLookup(redirect_to=resolution.redirect_to)
        owner = self.registry.owner_of(resolution.slug)
        if owner is None:
            return PublicProfileLookup()
        profile = self.profiles.get_profile(owner)
        if profile is None or not profile.get("public_profile_enabled"):
            return PublicProfileLookup()
        data = dict(profile)
        data["public_slug"] = resolution.slug
        return PublicProfileLookup(profile=data)
