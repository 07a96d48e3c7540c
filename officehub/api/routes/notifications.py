"""
Notification endpoints.

Daily digest triggers and per-user notification preferences.  Preference
reads are served through the response cache; updates invalidate it.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from officehub.api.middleware.user_auth import AuthenticatedUser, get_current_user, require_admin
from officehub.api.models import NotificationPreferences, PreferencesUpdate
from officehub.notifications.digest import DigestService
from officehub.observability.logging import get_logger
from officehub.storage.repository import StoreError
from officehub.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/notifications", tags=["notifications"])
logger = get_logger(__name__)

PREFERENCES_PATH = "/api/notifications/preferences"


def get_digest_service(request: Request) -> DigestService:
    return request.app.state.digest_service


@router.post("/digest/trigger")
async def trigger_digest(
    _admin: AuthenticatedUser = Depends(require_admin),
    service: DigestService = Depends(get_digest_service),
) -> Any:
    """Run the daily digest for every user now (admin only)."""
    result = await service.trigger_now()
    if result["success"]:
        return {"message": result["message"]}

    return JSONResponse(
        status_code=500,
        content={
            "error": "Digest trigger failed",
            "message": sanitize_error_message(result["message"], 500),
        },
    )


@router.post("/digest/send-to-me")
async def send_digest_to_me(
    user: AuthenticatedUser = Depends(get_current_user),
    service: DigestService = Depends(get_digest_service),
) -> dict[str, Any]:
    queued = await service.send_to_user(user.id)
    message = "Daily digest email queued successfully" if queued else "Nothing to send today"
    return {"message": message, "queued": queued}


@router.get("/preferences")
async def get_preferences(
    request: Request, user: AuthenticatedUser = Depends(get_current_user)
) -> dict[str, Any]:
    try:
        profile = await run_in_threadpool(request.app.state.store.get_profile, user.id)
    except StoreError as e:
        logger.error("Failed to load preferences for %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail=sanitize_error_message(str(e), 500)) from None

    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")

    preferences = NotificationPreferences(**profile.notification_preferences)
    return {"data": preferences.model_dump()}


@router.put("/preferences")
async def update_preferences(
    update: PreferencesUpdate,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    changes = update.changes()
    if not changes:
        raise HTTPException(
            status_code=400,
            detail="At least one preference (email or push) must be provided",
        )

    try:
        merged = await run_in_threadpool(
            request.app.state.store.update_notification_preferences, user.id, changes
        )
    except StoreError as e:
        logger.error("Failed to update preferences for %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail=sanitize_error_message(str(e), 500)) from None

    if merged is None:
        raise HTTPException(status_code=404, detail="Profile not found")

    request.app.state.response_cache.invalidate(f"{user.id}:{PREFERENCES_PATH}")

    return {
        "data": NotificationPreferences(**merged).model_dump(),
        "message": "Notification preferences updated successfully",
    }
