from __future__ import annotations

"""
Prometheus metrics for the authorization ledger.

We expose counters and gauges covering:
- operations: every ledger call by op name and result
- rejections: failed calls by error code
- events: notifications emitted by event name, and sink delivery failures
- membership: live member count per role and total blacklisted accounts

The ledger updates these through `observe_*` helpers so it never touches the
prometheus objects directly; a ledger built with `metrics=False` skips them.
"""


from typing import Mapping, Tuple

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, generate_latest)

# Use a dedicated registry so embedding apps can choose to merge or expose it directly.
REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   op:     "init" | "grantOrRevokeRole" | "setBlacklist" | "transferOwnership"
#   result: "ok" | "noop" | "rejected"
#   code:   LedgerError.code (e.g. "LEDGER_UNAUTHORIZED")
#   role:   "ADMIN" | "MODERATOR" | "USER"
# ────────────────────────────────────────────────────────────────────────────────

OPERATIONS = Counter(
    "access_ledger_operations_total",
    "Total ledger operations by op and result.",
    labelnames=("op", "result"),
    registry=REGISTRY,
)

REJECTIONS = Counter(
    "access_ledger_rejections_total",
    "Total rejected ledger calls by error code.",
    labelnames=("code",),
    registry=REGISTRY,
)

EVENTS_EMITTED = Counter(
    "access_ledger_events_emitted_total",
    "Total notifications emitted by event name.",
    labelnames=("name",),
    registry=REGISTRY,
)

SINK_FAILURES = Counter(
    "access_ledger_sink_failures_total",
    "Total events the sink failed to accept, by event name.",
    labelnames=("name",),
    registry=REGISTRY,
)

ACCESS_DECISIONS = Counter(
    "access_ledger_access_decisions_total",
    "Total checkAccess decisions by reason.",
    labelnames=("reason",),
    registry=REGISTRY,
)

ROLE_MEMBERS = Gauge(
    "access_ledger_role_members",
    "Current number of accounts holding a role.",
    labelnames=("role",),
    registry=REGISTRY,
)

BLACKLISTED = Gauge(
    "access_ledger_blacklisted_accounts",
    "Current number of blacklisted accounts.",
    registry=REGISTRY,
)


def observe_operation(op: str, result: str) -> None:
    OPERATIONS.labels(op=op, result=result).inc()


def observe_rejection(op: str, code: str) -> None:
    OPERATIONS.labels(op=op, result="rejected").inc()
    REJECTIONS.labels(code=code).inc()


def observe_event(name: str) -> None:
    EVENTS_EMITTED.labels(name=name).inc()


def observe_sink_failure(name: str) -> None:
    SINK_FAILURES.labels(name=name).inc()


def observe_decision(reason: str) -> None:
    ACCESS_DECISIONS.labels(reason=reason).inc()


def set_gauges(role_counts: Mapping[str, int], blacklisted: int) -> None:
    for role, n in role_counts.items():
        ROLE_MEMBERS.labels(role=role).set(n)
    BLACKLISTED.set(blacklisted)


def render_latest() -> Tuple[bytes, str]:
    """Return (payload, content_type) for a /metrics endpoint."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


__all__ = [
    "REGISTRY",
    "OPERATIONS",
    "REJECTIONS",
    "EVENTS_EMITTED",
    "SINK_FAILURES",
    "ACCESS_DECISIONS",
    "ROLE_MEMBERS",
    "BLACKLISTED",
    "observe_operation",
    "observe_rejection",
    "observe_event",
    "observe_sink_failure",
    "observe_decision",
    "set_gauges",
    "render_latest",
]
