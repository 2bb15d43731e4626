"""Trust & safety models - content flags, user reports and per-user sanctions."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportReason(str, enum.Enum):
    NUDITY = "nudity"
    VIOLENCE = "violence"
    HARASSMENT = "harassment"
    HATE_SPEECH = "hate_speech"
    SCAM_FRAUD = "scam_fraud"
    SPAM = "spam"
    MISINFORMATION = "misinformation"
    OTHER = "other"


class ModerationStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    ACTIONED = "actioned"
    DISMISSED = "dismissed"


class FlagSource(str, enum.Enum):
    USER_REPORT = "user_report"
    # Stored as "ai_moderation" in existing rows
    AUTOMATED_CLASSIFIER = "ai_moderation"
    ADMIN_FLAG = "admin_flag"


class ModerationAction(str, enum.Enum):
    WARNING = "warning"
    CONTENT_REMOVAL = "content_removal"
    TEMPORARY_SUSPENSION = "temporary_suspension"
    PERMANENT_BAN = "permanent_ban"
    WALLET_FREEZE = "wallet_freeze"
    WALLET_UNFREEZE = "wallet_unfreeze"
    NONE = "none"


TERMINAL_STATUSES = frozenset(
    {ModerationStatus.REVIEWED.value, ModerationStatus.ACTIONED.value, ModerationStatus.DISMISSED.value}
)


def _in_check(column: str, vocabulary: type[enum.Enum]) -> str:
    values = ",".join(f"'{member.value}'" for member in vocabulary)
    return f"{column} IN ({values})"


class ContentFlag(Base):
    """A unit of moderation work raised by a user report, the classifier or an admin."""

    __tablename__ = "content_flags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    comment_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    flagged_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)  # NULL for automated flags
    source: Mapped[str] = mapped_column(String(24), nullable=False)
    reason: Mapped[str] = mapped_column(String(24), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ai_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    urgency_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ModerationStatus.PENDING.value)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    action_taken: Mapped[str | None] = mapped_column(String(24), nullable=True)
    action_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "post_id IS NOT NULL OR comment_id IS NOT NULL OR user_id IS NOT NULL", name="chk_flag_has_target"
        ),
        CheckConstraint(_in_check("source", FlagSource), name="chk_flag_source"),
        CheckConstraint(_in_check("reason", ReportReason), name="chk_flag_reason"),
        CheckConstraint(_in_check("status", ModerationStatus), name="chk_flag_status"),
        CheckConstraint("ai_confidence IS NULL OR (ai_confidence >= 0 AND ai_confidence <= 1)", name="chk_flag_conf"),
        # Review queue: pending flags by urgency
        Index(
            "idx_flags_queue",
            "status",
            "urgency_level",
            "created_at",
        ),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == ModerationStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<ContentFlag(id={self.id}, source={self.source}, reason={self.reason}, status={self.status})>"


class UserReport(Base):
    """Explicit human report; always paired with the ContentFlag it spawned."""

    __tablename__ = "user_reports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    reporter_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    reported_user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reported_post_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reported_comment_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reason: Mapped[str] = mapped_column(String(24), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ModerationStatus.PENDING.value)
    content_flag_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("content_flags.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "reported_user_id IS NOT NULL OR reported_post_id IS NOT NULL OR reported_comment_id IS NOT NULL",
            name="chk_report_has_target",
        ),
        CheckConstraint(_in_check("reason", ReportReason), name="chk_report_reason"),
        CheckConstraint(_in_check("status", ModerationStatus), name="chk_report_status"),
        Index("idx_reports_open", "status", postgresql_where=text("status = 'pending'")),
    )

    def __repr__(self) -> str:
        return f"<UserReport(id={self.id}, reporter={self.reporter_id}, reason={self.reason}, status={self.status})>"


class UserModeration(Base):
    """Current sanction state of a user (one row per sanctioned user)."""

    __tablename__ = "user_moderation"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False)
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    suspension_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    suspended_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    suspended_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    banned_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    banned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    banned_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    warning_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_warning_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<UserModeration(user={self.user_id}, banned={self.is_banned}, suspended={self.is_suspended})>"
