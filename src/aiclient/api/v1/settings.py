# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the settings unit so this responsibility stays isolated, testable, and easy to evolve.

API endpoints for stored API profiles and the session's profile/model choice.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from aiclient.api.v1.http_responses import get_chat_session, ok_json
from aiclient.models.chat import SelectionResponse, SelectionUpdateRequest
from aiclient.models.profiles import (
    ApiProfile,
    ProfileCreateRequest,
    ProfilePublic,
    ProfileUpdateRequest,
)
from aiclient.services.chat.chat_lifecycle_ops import ChatSession
from aiclient.services.exceptions import NotFoundError

router = APIRouter(prefix="/settings", tags=["Settings"])


def _selection(session: ChatSession, profile: ApiProfile, model: str) -> SelectionResponse:
    return SelectionResponse(
        profile_id=profile.id,
        model=model,
        models=profile.model_names(),
        use_streaming=session.state.use_streaming,
    )


@router.get("/profiles", response_model=list[ProfilePublic])
async def api_list_profiles(
    session: ChatSession = Depends(get_chat_session),
) -> list[ProfilePublic]:
    return [ProfilePublic.from_profile(p) for p in session.refresh_profiles()]


@router.post("/profiles", response_model=ProfilePublic, status_code=201)
async def api_create_profile(
    body: ProfileCreateRequest, session: ChatSession = Depends(get_chat_session)
) -> ProfilePublic:
    profile = session.store.create_profile(body.model_dump())
    session.refresh_profiles()
    return ProfilePublic.from_profile(profile)


@router.get("/profiles/{profile_id}", response_model=ProfilePublic)
async def api_get_profile(
    profile_id: int, session: ChatSession = Depends(get_chat_session)
) -> ProfilePublic:
    profile = session.store.get_profile_by_id(profile_id)
    if profile is None:
        raise NotFoundError(f"Profile {profile_id} not found")
    return ProfilePublic.from_profile(profile)


@router.put("/profiles/{profile_id}", response_model=ProfilePublic)
async def api_update_profile(
    profile_id: int,
    body: ProfileUpdateRequest,
    session: ChatSession = Depends(get_chat_session),
) -> ProfilePublic:
    session.store.update_profile(profile_id, body.model_dump(exclude_none=True))
    return ProfilePublic.from_profile(session.reload_profile(profile_id))


@router.delete("/profiles/{profile_id}")
async def api_delete_profile(
    profile_id: int, session: ChatSession = Depends(get_chat_session)
) -> JSONResponse:
    if not session.store.delete_profile(profile_id):
        raise NotFoundError(f"Profile {profile_id} not found")
    session.refresh_profiles()
    return ok_json()


@router.get("/selection", response_model=SelectionResponse)
async def api_get_selection(
    session: ChatSession = Depends(get_chat_session),
) -> SelectionResponse:
    """Reconcile the selection with the stored profiles and return it."""
    profile, model = session.refresh_selection()
    return _selection(session, profile, model)


@router.put("/selection", response_model=SelectionResponse)
async def api_update_selection(
    body: SelectionUpdateRequest, session: ChatSession = Depends(get_chat_session)
) -> SelectionResponse:
    profile, model = session.apply_settings(
        profile_id=body.profile_id, model=body.model, use_streaming=body.use_streaming
    )
    return _selection(session, profile, model)
