"""Pydantic request/response models for the officehub API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PreferencesUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    email: bool | None = None
    push: bool | None = None

    def changes(self) -> dict[str, bool]:
        return self.model_dump(exclude_none=True)


class NotificationPreferences(BaseModel):
    email: bool = True
    push: bool = True


class DigestTriggerResponse(BaseModel):
    message: str


class EmailMonitoringResponse(BaseModel):
    status: str
    configured: bool
    queue_depth: int
    timestamp: str
