# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metric objects for the rotation service.
Middleware owns the HTTP series; services own the group/assignment series.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP ──
REQUEST_COUNT = Counter(
    "rotation_requests_total",
    "HTTP requests handled, by normalised route",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "rotation_request_duration_seconds",
    "Request handling time in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)
HTTP_ERRORS = Counter(
    "rotation_http_errors_total",
    "Responses with a 4xx or 5xx status",
    ["method", "endpoint", "status"],
)

# ── Groups & membership ──
GROUPS_CREATED = Counter(
    "rotation_groups_created_total",
    "Total savings groups created",
)
ACTIVE_GROUPS = Gauge(
    "rotation_active_groups",
    "Number of stored savings groups",
)
MEMBERS_JOINED = Counter(
    "rotation_members_joined_total",
    "Total members that joined a group",
)
INVITE_REQUESTS = Counter(
    "rotation_invite_requests_total",
    "Invite requests by outcome",
    ["outcome"],
)
PENDING_INVITE_REQUESTS = Gauge(
    "rotation_pending_invite_requests",
    "Invite requests waiting for an admin",
)

# ── Assignment & timeline ──
RAFFLES_RUN = Counter(
    "rotation_raffles_run_total",
    "Total raffle previews computed (including redos)",
)
ASSIGNMENTS_SAVED = Counter(
    "rotation_assignments_saved_total",
    "Total committed position assignments",
    ["strategy"],
)
ASSIGNMENT_REJECTIONS = Counter(
    "rotation_assignment_rejections_total",
    "Assignment commits blocked by validation",
    ["reason"],
)
PENDING_DRAFTS = Gauge(
    "rotation_pending_drafts",
    "Number of uncommitted assignment drafts",
)
TIMELINES_GENERATED = Counter(
    "rotation_timelines_generated_total",
    "Total timelines (re)generated",
)
COLLECTIONS_COMPLETED = Counter(
    "rotation_collections_completed_total",
    "Total pool collections confirmed",
)
NOTIFICATIONS_SENT = Counter(
    "rotation_notifications_sent_total",
    "Total notification requests sent",
    ["channel"],
)
