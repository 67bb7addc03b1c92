# backend/app/domain/statuses.py
from __future__ import annotations

from enum import Enum

from fastapi import HTTPException


class UserType(str, Enum):
    admin = "admin"
    sub_admin = "sub-admin"
    tenant = "tenant"
    landlord = "landlord"
    inspector = "inspector"


ADMIN_TYPES = (UserType.admin.value, UserType.sub_admin.value)
CHATTABLE_TYPES = (UserType.inspector.value, UserType.tenant.value, UserType.landlord.value)


class UserStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class CaseStatus(str, Enum):
    open = "open"
    pending = "pending"
    in_progress = "in-progress"
    on_hold = "on-hold"
    completed = "completed"
    cancelled = "cancelled"


class Urgency(str, Enum):
    high = "high"
    moderate = "moderate"
    low = "low"


class PaymentStatus(str, Enum):
    pending = "pending"
    processed = "processed"
    rejected = "rejected"


class PayoutStatus(str, Enum):
    pending = "pending"  # earned, not yet requested
    requested = "requested"
    processed = "processed"
    rejected = "rejected"


class RefundStatus(str, Enum):
    pending = "pending"
    processed = "processed"
    rejected = "rejected"


class TimelineEvent(str, Enum):
    case_created = "caseCreated"
    inspector_assigned = "inspectorAssigned"
    inspector_accepted = "inspectorAccepted"
    site_visit_scheduled = "siteVisitScheduled"
    issue_raised = "issueRaised"
    other = "other"
    case_completed = "caseCompleted"
    case_cancelled = "caseCancelled"
    case_released = "caseReleased"
    case_on_hold = "caseOnHold"
    deadline_extended = "deadlineExtended"
    status_change = "statusChange"


# -----------------------------------------------------------------------------
# Case status transitions
# -----------------------------------------------------------------------------
# Terminal states have no outgoing edges. Writing the current status again is
# treated as a no-op by callers, not as a transition.
CASE_TRANSITIONS: dict[str, frozenset[str]] = {
    CaseStatus.open.value: frozenset({"pending", "in-progress", "on-hold", "cancelled"}),
    CaseStatus.pending.value: frozenset({"open", "in-progress", "on-hold", "cancelled"}),
    CaseStatus.in_progress.value: frozenset({"open", "on-hold", "completed", "cancelled"}),
    CaseStatus.on_hold.value: frozenset({"open", "in-progress", "completed", "cancelled"}),
    CaseStatus.completed.value: frozenset(),
    CaseStatus.cancelled.value: frozenset(),
}


def values(enum_cls: type[Enum]) -> list[str]:
    return [m.value for m in enum_cls]


def parse_enum(enum_cls: type[Enum], raw: str | None, *, field: str) -> str:
    v = (raw or "").strip()
    allowed = values(enum_cls)
    if v not in allowed:
        raise HTTPException(status_code=400, detail=f"Invalid {field}. Allowed values: {', '.join(allowed)}")
    return v


def can_transition(current: str, target: str) -> bool:
    return target in CASE_TRANSITIONS.get(current, frozenset())


def ensure_case_transition(current: str, target: str) -> None:
    if current == target:
        return
    if not can_transition(current, target):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot change case status from '{current}' to '{target}'",
        )
