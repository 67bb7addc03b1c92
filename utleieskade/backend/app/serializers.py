# backend/app/serializers.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from .domain.action_log import metadata_of
from .models import (
    ActionLog,
    AssessmentItem,
    AssessmentSummary,
    Case,
    CaseTimeline,
    Conversation,
    Damage,
    Expertise,
    InspectorPayment,
    Message,
    Notification,
    Payment,
    PlatformSettings,
    Property,
    Refund,
    Report,
    User,
)


def iso(v: Optional[datetime]) -> Optional[str]:
    return v.isoformat() if v is not None else None


def money(v: Optional[Decimal]) -> Optional[float]:
    if v is None:
        return None
    return float(Decimal(v).quantize(Decimal("0.01")))


def user_out(u: User) -> dict[str, Any]:
    """Never includes the password hash."""
    return {
        "userId": u.id,
        "userFirstName": u.first_name,
        "userLastName": u.last_name,
        "userEmail": u.email,
        "userPhone": u.phone,
        "userCity": u.city,
        "userPostcode": u.postcode,
        "userAddress": u.address,
        "userCountry": u.country,
        "userGender": u.gender,
        "userProfilePic": u.profile_pic,
        "userType": u.user_type,
        "userStatus": u.status,
        "isVerified": bool(u.is_verified),
        "createdAt": iso(u.created_at),
    }


def user_brief(u: Optional[User]) -> Optional[dict[str, Any]]:
    if u is None:
        return None
    return {
        "userId": u.id,
        "userFirstName": u.first_name,
        "userLastName": u.last_name,
        "userEmail": u.email,
        "userType": u.user_type,
        "userProfilePic": u.profile_pic,
    }


def property_out(p: Optional[Property]) -> Optional[dict[str, Any]]:
    if p is None:
        return None
    return {
        "propertyId": p.id,
        "propertyType": p.property_type,
        "propertyAddress": p.address,
        "propertyCity": p.city,
        "propertyPostcode": p.postcode,
        "propertyCountry": p.country,
    }


def damage_out(d: Damage) -> dict[str, Any]:
    return {
        "damageId": d.id,
        "damageLocation": d.location,
        "damageType": d.damage_type,
        "damageDescription": d.description,
        "damageDate": iso(d.damage_date),
        "damagePhotos": [
            {"photoId": ph.id, "photoType": ph.photo_type, "photoUrl": ph.photo_url} for ph in d.photos
        ],
    }


def timeline_out(t: CaseTimeline) -> dict[str, Any]:
    return {
        "timelineId": t.id,
        "caseId": t.case_id,
        "eventType": t.event_type,
        "eventDescription": t.description,
        "eventTimestamp": iso(t.created_at),
    }


def case_summary(c: Case) -> dict[str, Any]:
    return {
        "caseId": c.id,
        "tenantId": c.tenant_id,
        "inspectorId": c.inspector_id,
        "propertyId": c.property_id,
        "caseDescription": c.description,
        "caseStatus": c.status,
        "caseUrgency": c.urgency,
        "buildingNumber": c.building_number,
        "caseDeadline": iso(c.deadline),
        "caseCompletedDate": iso(c.completed_at),
        "cancellationReason": c.cancellation_reason,
        "createdAt": iso(c.created_at),
        "updatedAt": iso(c.updated_at),
    }


def assessment_item_out(i: AssessmentItem) -> dict[str, Any]:
    return {
        "item": i.item,
        "quantity": money(i.quantity),
        "unitPrice": money(i.unit_price),
        "hours": money(i.hours),
        "hourlyRate": money(i.hourly_rate),
        "sumMaterial": money(i.sum_material),
        "sumWork": money(i.sum_work),
        "sumPost": money(i.sum_post),
    }


def assessment_summary_out(s: Optional[AssessmentSummary]) -> Optional[dict[str, Any]]:
    if s is None:
        return None
    return {
        "totalHours": money(s.total_hours),
        "totalSumMaterials": money(s.total_sum_materials),
        "totalSumLabor": money(s.total_sum_labor),
        "sumExclVAT": money(s.sum_excl_vat),
        "vat": money(s.vat),
        "sumInclVAT": money(s.sum_incl_vat),
        "total": money(s.total),
    }


def report_out(r: Report, *, full: bool = True) -> dict[str, Any]:
    out: dict[str, Any] = {
        "reportId": r.id,
        "caseId": r.case_id,
        "inspectorId": r.inspector_id,
        "reportDescription": r.description,
        "pdfUrl": r.pdf_url,
        "createdAt": iso(r.created_at),
        "reportPhotos": [{"photoType": p.photo_type, "photoUrl": p.photo_url} for p in r.photos],
    }
    if full:
        out["assessmentItems"] = [assessment_item_out(i) for i in r.items]
        out["assessmentSummary"] = assessment_summary_out(r.summary)
    return out


def case_detail(c: Case) -> dict[str, Any]:
    out = case_summary(c)
    out["tenant"] = user_brief(c.tenant)
    out["inspector"] = user_brief(c.inspector)
    out["property"] = property_out(c.property)
    out["damages"] = [damage_out(d) for d in c.damages]
    out["timeline"] = [timeline_out(t) for t in sorted(c.timeline, key=lambda t: (t.created_at, t.id))]
    out["reports"] = [report_out(r) for r in c.reports]
    return out


def payment_out(p: Payment) -> dict[str, Any]:
    return {
        "paymentId": p.id,
        "caseId": p.case_id,
        "tenantId": p.tenant_id,
        "paymentAmount": money(p.amount),
        "currency": p.currency,
        "paymentStatus": p.status,
        "paymentDescription": p.description,
        "paymentDate": iso(p.paid_at),
    }


def payout_out(p: InspectorPayment, *, with_inspector: bool = False) -> dict[str, Any]:
    out: dict[str, Any] = {
        "paymentId": p.id,
        "inspectorId": p.inspector_id,
        "caseId": p.case_id,
        "paymentAmount": money(p.amount),
        "paymentStatus": p.status,
        "rejectionReason": p.rejection_reason,
        "paymentDate": iso(p.payment_date),
        "requestedAt": iso(p.requested_at),
        "processedAt": iso(p.processed_at),
    }
    if with_inspector:
        out["inspector"] = user_brief(p.inspector)
    return out


def refund_out(r: Refund) -> dict[str, Any]:
    return {
        "refundId": r.id,
        "caseId": r.case_id,
        "paymentId": r.payment_id,
        "tenantId": r.tenant_id,
        "amount": money(r.amount),
        "refundStatus": r.status,
        "refundReason": r.reason,
        "requestDate": iso(r.request_date),
        "processedAt": iso(r.processed_at),
        "tenant": user_brief(r.tenant),
    }


def conversation_out(c: Conversation, *, viewer_id: Optional[str] = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "conversationId": c.id,
        "userOne": c.user_one_id,
        "userTwo": c.user_two_id,
        "lastMessage": c.last_message,
        "lastMessageTimestamp": iso(c.last_message_at),
        "createdAt": iso(c.created_at),
    }
    if viewer_id is not None:
        other = c.user_two if c.user_one_id == viewer_id else c.user_one
        out["otherUser"] = user_brief(other)
    else:
        out["userOneDetails"] = user_brief(c.user_one)
        out["userTwoDetails"] = user_brief(c.user_two)
    return out


def message_out(m: Message) -> dict[str, Any]:
    return {
        "messageId": m.id,
        "conversationId": m.conversation_id,
        "senderId": m.sender_id,
        "receiverId": m.receiver_id,
        "messageText": m.text,
        "isRead": bool(m.is_read),
        "sentAt": iso(m.sent_at),
    }


def notification_out(n: Notification) -> dict[str, Any]:
    return {
        "notificationId": n.id,
        "userId": n.user_id,
        "title": n.title,
        "message": n.message,
        "notificationType": n.notification_type,
        "caseId": n.case_id,
        "isRead": bool(n.is_read),
        "createdAt": iso(n.created_at),
    }


def action_log_out(a: ActionLog) -> dict[str, Any]:
    return {
        "logId": a.id,
        "inspectorId": a.inspector_id,
        "adminId": a.admin_id,
        "actionType": a.action_type,
        "actionDescription": a.description,
        "caseId": a.case_id,
        "metadata": metadata_of(a),
        "createdAt": iso(a.created_at),
    }


def settings_out(s: PlatformSettings) -> dict[str, Any]:
    return {
        "settingsId": s.id,
        "defaultLanguage": s.default_language,
        "paymentThreshold": money(s.payment_threshold),
        "refundPolicyDays": s.refund_policy_days,
        "basePrice": money(s.base_price),
        "hasteCaseFee": money(s.haste_case_fee),
        "hasteCaseDeadlineDays": s.haste_case_deadline_days,
        "normalCaseDeadlineDays": s.normal_case_deadline_days,
        "gdprEnabled": bool(s.gdpr_enabled),
        "dataRetentionDays": s.data_retention_days,
        "inspectorPercentage": money(s.inspector_percentage),
        "updatedAt": iso(s.updated_at),
    }


def expertise_out(e: Expertise) -> dict[str, Any]:
    return {"expertiseCode": e.code, "expertiseArea": e.area, "expertiseDescription": e.description}
