import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base
from models.moderation import utcnow

_Json = JSON().with_variant(JSONB(), "postgresql")


class AdminLog(Base):
    """Append-only record of a privileged action. Rows are never updated or deleted."""

    __tablename__ = "admin_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    admin_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String(32), nullable=False)  # review_flag, ban_user, warn_user, ...
    target_type: Mapped[str] = mapped_column(String(16), nullable=False)  # post, comment, user, flag, report
    target_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    old_value: Mapped[dict[str, Any] | None] = mapped_column(_Json, nullable=True)
    new_value: Mapped[dict[str, Any] | None] = mapped_column(_Json, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("idx_admin_logs_action_created", "action_type", "created_at"),)

    def __repr__(self) -> str:
        return f"<AdminLog(id={self.id}, admin={self.admin_id}, action={self.action_type})>"
