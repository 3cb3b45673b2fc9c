"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"student_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"student_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

IDENTITY_REGISTER = Counter(
	"student_identity_register_total",
	"Accounts registered",
	["role"],
)

IDENTITY_LOGIN = Counter(
	"student_identity_login_total",
	"Login attempts",
	["result"],
)

DISCUSSIONS_CREATED = Counter(
	"student_discussions_created_total",
	"Discussions created",
	["category"],
)

COMMENTS_CREATED = Counter(
	"student_comments_created_total",
	"Comments added to discussions",
	["placement"],
)

LIKES_TOGGLED = Counter(
	"student_likes_toggled_total",
	"Like toggles on discussions and comments",
	["subject", "state"],
)

REPORTS_FILED = Counter(
	"student_reports_filed_total",
	"Reports filed against discussions and comments",
	["subject"],
)

MODERATION_ACTIONS = Counter(
	"student_moderation_actions_total",
	"Admin moderation actions applied",
	["subject", "action"],
)

EVENTS_CREATED = Counter(
	"student_events_created_total",
	"Events submitted for approval",
	["event_type"],
)

EVENT_TRANSITIONS = Counter(
	"student_event_transitions_total",
	"Event approval workflow transitions",
	["transition"],
)

EVENT_VIEWS = Counter(
	"student_event_views_total",
	"Event views recorded or deduplicated",
	["platform", "result"],
)

EVENT_FEEDBACK = Counter(
	"student_event_feedback_total",
	"Admin feedback messages sent",
)

UPSTREAM_FAILURES = Counter(
	"student_upstream_failures_total",
	"Best-effort upstream calls that failed",
	["upstream", "operation"],
)

RATE_LIMITED = Counter(
	"student_rate_limited_total",
	"Requests rejected by rate limiting",
	["kind"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_identity_register(role: str) -> None:
	IDENTITY_REGISTER.labels(role=role).inc()


def inc_identity_login(result: str) -> None:
	IDENTITY_LOGIN.labels(result=result).inc()


def inc_discussion_created(category: str) -> None:
	DISCUSSIONS_CREATED.labels(category=category).inc()


def inc_comment_created(placement: str) -> None:
	COMMENTS_CREATED.labels(placement=placement).inc()


def inc_like_toggled(subject: str, *, liked: bool) -> None:
	LIKES_TOGGLED.labels(subject=subject, state="liked" if liked else "unliked").inc()


def inc_report_filed(subject: str) -> None:
	REPORTS_FILED.labels(subject=subject).inc()


def inc_moderation_action(subject: str, action: str) -> None:
	MODERATION_ACTIONS.labels(subject=subject, action=action).inc()


def inc_event_created(event_type: str) -> None:
	EVENTS_CREATED.labels(event_type=event_type).inc()


def inc_event_transition(transition: str) -> None:
	EVENT_TRANSITIONS.labels(transition=transition).inc()


def inc_event_view(platform: str, *, recorded: bool) -> None:
	EVENT_VIEWS.labels(platform=platform, result="recorded" if recorded else "deduplicated").inc()


def inc_event_feedback() -> None:
	EVENT_FEEDBACK.inc()


def inc_upstream_failure(upstream: str, operation: str) -> None:
	UPSTREAM_FAILURES.labels(upstream=upstream, operation=operation).inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED.labels(kind=kind).inc()
