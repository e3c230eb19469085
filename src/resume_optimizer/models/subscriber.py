"""Landing-page email subscriber records."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class EmailSubscriber(BaseModel):
    id: int
    email: str
    source: str = "landing_page"
    created_at: datetime = Field(default_factory=datetime.now)
    ip_address: str | None = None
    user_agent: str | None = None


class SubscribeResult(BaseModel):
    success: bool
    message: str
    already_subscribed: bool = False
    subscriber_id: int | None = None
