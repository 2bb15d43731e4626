"""Pydantic shapes exchanged between the moderation engine and its callers."""

import enum
import uuid
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.errors import ValidationError

E = TypeVar("E", bound=enum.Enum)


class ReportTarget(BaseModel):
    """What a report or flag points at. At least one reference must be set."""

    user_id: uuid.UUID | None = None
    post_id: uuid.UUID | None = None
    comment_id: uuid.UUID | None = None

    @property
    def is_empty(self) -> bool:
        return self.user_id is None and self.post_id is None and self.comment_id is None


class ClassifierSignal(BaseModel):
    """Output of the external content classifier."""

    post_id: uuid.UUID | None = None
    comment_id: uuid.UUID | None = None
    user_id: uuid.UUID | None = None
    category: str = Field(min_length=1, max_length=64)
    confidence: float = Field(ge=0.0, le=1.0)
    urgency_level: int = Field(ge=0)
    description: str | None = None

    @model_validator(mode="after")
    def _has_target(self) -> "ClassifierSignal":
        if self.post_id is None and self.comment_id is None and self.user_id is None:
            raise ValueError("signal must reference a post, comment or user")
        return self


class ProfileSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    avatar_url: str | None = None


class PostSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    caption: str | None = None
    type: str
    media_url: str | None = None


class FlagView(BaseModel):
    """A ContentFlag as shown in the review queue, with related rows attached when they still exist."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    post_id: uuid.UUID | None = None
    comment_id: uuid.UUID | None = None
    user_id: uuid.UUID | None = None
    flagged_by: uuid.UUID | None = None
    source: str
    reason: str
    description: str | None = None
    ai_category: str | None = None
    ai_confidence: float | None = None
    urgency_level: int | None = None
    status: str
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime | None = None
    action_taken: str | None = None
    action_notes: str | None = None
    created_at: datetime

    post: PostSummary | None = None
    flagged_user: ProfileSummary | None = None
    reporter: ProfileSummary | None = None


class ReportView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    reporter_id: uuid.UUID
    reported_user_id: uuid.UUID | None = None
    reported_post_id: uuid.UUID | None = None
    reported_comment_id: uuid.UUID | None = None
    reason: str
    description: str | None = None
    status: str
    content_flag_id: uuid.UUID | None = None
    created_at: datetime

    reporter: ProfileSummary | None = None
    reported_user: ProfileSummary | None = None
    reported_post: PostSummary | None = None


class AdminLogView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    admin_id: uuid.UUID
    action_type: str
    target_type: str
    target_id: str | None = None
    old_value: dict[str, Any] | None = None
    new_value: dict[str, Any] | None = None
    reason: str | None = None
    ip_address: str | None = None
    created_at: datetime

    admin_profile: ProfileSummary | None = None


class UserModerationView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    is_suspended: bool
    suspension_reason: str | None = None
    suspended_until: datetime | None = None
    is_banned: bool
    banned_reason: str | None = None
    banned_at: datetime | None = None
    warning_count: int
    last_warning_at: datetime | None = None
    updated_at: datetime

    user_profile: ProfileSummary | None = None


class ModerationStats(BaseModel):
    pending: int = 0
    reviewed: int = 0
    actioned: int = 0
    dismissed: int = 0


def parse_choice(vocabulary: type[E], value: "E | str", field: str) -> E:
    """Coerce ``value`` into a member of ``vocabulary`` or raise a ValidationError naming ``field``."""
    try:
        return vocabulary(value)
    except ValueError:
        allowed = ", ".join(member.value for member in vocabulary)
        raise ValidationError(f"Invalid {field} '{value}'. Must be one of: {allowed}") from None
