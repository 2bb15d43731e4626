"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram

# Response time metrics
api_request_duration = Histogram(
    "api_request_duration_seconds", "API request duration in seconds", ["method", "endpoint", "status"]
)

# Flag ingestion
flags_ingested_total = Counter("flags_ingested_total", "Total number of content flags created", ["source", "reason"])

reports_total = Counter("reports_total", "Total number of user reports created", ["reason"])

reports_rate_limited_total = Counter("reports_rate_limited_total", "Total number of reports refused by rate limit")

reports_latency_seconds = Histogram(
    "reports_latency_seconds", "Time to process report creation from request to response"
)

# Disposition
flag_reviews_total = Counter("flag_reviews_total", "Total number of flag dispositions recorded", ["decision"])

content_deletions_total = Counter(
    "content_deletions_total", "Total number of posts/comments removed by moderators", ["content_type"]
)

review_latency_seconds = Histogram("review_latency_seconds", "Time to apply a reviewer decision")

# Audit trail
audit_log_failures_total = Counter(
    "audit_log_failures_total", "Admin log writes that failed and were dropped", ["action_type"]
)

# User moderation
user_sanctions_total = Counter("user_sanctions_total", "Total number of user sanctions applied", ["action"])
