"""Moderation engine: flag ingestion, review queue, dispositions, audit trail and rate limits."""

from apps.moderation.audit import fetch_logs, log_action
from apps.moderation.disposition import (
    ContentDeleter,
    SqlContentDeleter,
    delete_flagged_content,
    review_flag,
    update_report_status,
)
from apps.moderation.ingestion import file_user_report, flag_content, ingest_automated_flag
from apps.moderation.queue import fetch_moderation_stats, list_flags, list_reports
from apps.moderation.roles import has_role
from apps.moderation.rate_limit import check_rate_limit, increment_rate_limit, try_consume

__all__ = [
    "ContentDeleter",
    "SqlContentDeleter",
    "check_rate_limit",
    "delete_flagged_content",
    "fetch_logs",
    "fetch_moderation_stats",
    "file_user_report",
    "flag_content",
    "has_role",
    "increment_rate_limit",
    "ingest_automated_flag",
    "list_flags",
    "list_reports",
    "log_action",
    "review_flag",
    "try_consume",
    "update_report_status",
]
