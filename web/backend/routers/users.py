from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Response

from smart_playlist.domain.session import SessionContext, require_user
from smart_playlist.domain.users import profiles

from ..deps import get_session
from ..schemas import PreferencesInfo, PreferencesUpdate

router = APIRouter()


@router.get("/me/preferences", response_model=PreferencesInfo)
def get_preferences(session: SessionContext = Depends(get_session)):
    """Get the current user's preferences (defaults if none are stored)."""
    user = require_user(session)
    prefs = profiles.get_user_preferences(session, user.id)
    if prefs is None:
        return PreferencesInfo()
    return PreferencesInfo.model_validate(asdict(prefs))


@router.patch("/me/preferences", response_model=PreferencesInfo)
def update_preferences(
    request: PreferencesUpdate, session: SessionContext = Depends(get_session)
):
    """Update any subset of the current user's preferences."""
    user = require_user(session)
    changes = request.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No preferences given")

    profiles.ensure_user_profile(session)
    prefs = profiles.update_user_preferences(session, user.id, changes)
    return PreferencesInfo.model_validate(asdict(prefs))


@router.get("/me/stats")
def get_stats(session: SessionContext = Depends(get_session)):
    """Get the current user's aggregated stats."""
    user = require_user(session)
    stats = profiles.get_user_stats(session, user.id)
    if stats is None:
        raise HTTPException(status_code=404, detail="No stats yet")
    return stats


@router.delete("/me", status_code=204)
def delete_account(session: SessionContext = Depends(get_session)):
    """Delete the current user's account."""
    user = require_user(session)
    profiles.delete_account(session, user.id)
    return Response(status_code=204)
