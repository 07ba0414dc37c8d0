from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from slugregistry.application.profile_service import ProfileService
from slugregistry.application.registries.slug_registry import SlugRegistry

router = APIRouter()


def _service(request: Request) -> ProfileService:
    return request.app.state.profile_service


def _registry(request: Request) -> SlugRegistry:
    return request.app.state.slug_registry


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    full_name: Optional[str] = Field(None, max_length=256)
    public_profile_enabled: bool = False


class SlugUpdateRequest(BaseModel):
    public_slug: Optional[str] = Field(None, max_length=256)


class PublicProfileToggleRequest(BaseModel):
    public_profile_enabled: bool


class UserResponse(BaseModel):
    user: Dict[str, Any]


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(req: RegisterRequest, request: Request):
    user = _service(request).register(
        email=req.email,
        full_name=req.full_name,
        public_profile_enabled=req.public_profile_enabled,
    )
    return UserResponse(user=user)


@router.get("/profile/slug-availability/{slug}")
def slug_availability(slug: str, request: Request, user_id: Optional[str] = Query(None)):
    availability = _registry(request).check_availability(slug, requester=user_id)
    return availability.to_dict()


@router.get("/profile/{user_id}", response_model=UserResponse)
def get_profile(user_id: str, request: Request):
    user = _service(request).get_profile(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Not found")
    return UserResponse(user=user)


@router.put("/profile/{user_id}/slug", response_model=UserResponse)
def update_slug(user_id: str, req: SlugUpdateRequest, request: Request):
    user = _service(request).update_slug(user_id, req.public_slug)
    if not user:
        raise HTTPException(status_code=404, detail="Not found")
    return UserResponse(user=user)


@router.put("/profile/{user_id}/public", response_model=UserResponse)
def set_public_profile(user_id: str, req: PublicProfileToggleRequest, request: Request):
    user = _service(request).set_public_profile(user_id, req.public_profile_enabled)
    if not user:
        raise HTTPException(status_code=404, detail="Not found")
    return UserResponse(user=user)


@router.get("/instructors/slug/{slug}")
def public_profile(slug: str, request: Request):
    lookup = _service(request).public_profile(slug)
    if lookup.redirect_to:
        target = request.url_for("public_profile", slug=lookup.redirect_to)
        return RedirectResponse(url=target.path, status_code=308)
    if not lookup.profile:
        raise HTTPException(status_code=404, detail="Not found")
    return lookup.profile


@router.get("/slug-registry/capabilities")
def capabilities(request: Request):
    return _registry(request).router.detector.current().to_dict()
