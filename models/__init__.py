"""Database models."""

from models.admin_log import AdminLog
from models.content import Comment, Post, Profile
from models.moderation import (
    ContentFlag,
    FlagSource,
    ModerationAction,
    ModerationStatus,
    ReportReason,
    UserModeration,
    UserReport,
)
from models.role import AppRole, UserRole

__all__ = [
    "AdminLog",
    "AppRole",
    "Comment",
    "ContentFlag",
    "FlagSource",
    "ModerationAction",
    "ModerationStatus",
    "Post",
    "Profile",
    "ReportReason",
    "UserModeration",
    "UserReport",
    "UserRole",
]
