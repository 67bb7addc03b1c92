# backend/app/models.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .domain.clock import utcnow

MONEY = Numeric(12, 2)


# -----------------------------
# Identity
# -----------------------------
class User(Base):
    """One table for every actor; user_type is the discriminant."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    postcode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    profile_pic: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    user_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # admin|sub-admin|tenant|landlord|inspector
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active|inactive
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    bank_details: Mapped[Optional["BankDetails"]] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    notification_settings: Mapped[Optional["NotificationSettings"]] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    privacy_settings: Mapped[Optional["PrivacyPolicySettings"]] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    expertises: Mapped[List["UserExpertise"]] = relationship(back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Otp(Base):
    __tablename__ = "otps"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    code_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class BankDetails(Base):
    __tablename__ = "bank_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    bank_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    sort_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    user: Mapped["User"] = relationship(back_populates="bank_details")


class NotificationSettings(Base):
    __tablename__ = "notification_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    deadline_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    new_case_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tenants_updates: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    message_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    user: Mapped["User"] = relationship(back_populates="notification_settings")


class PrivacyPolicySettings(Base):
    __tablename__ = "privacy_policy_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    essential_cookies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    third_party_sharing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    user: Mapped["User"] = relationship(back_populates="privacy_settings")


class Expertise(Base):
    __tablename__ = "expertises"

    code: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    area: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class UserExpertise(Base):
    __tablename__ = "user_expertises"
    __table_args__ = (UniqueConstraint("user_id", "expertise_code", name="uq_user_expertises_user_code"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    expertise_code: Mapped[int] = mapped_column(Integer, ForeignKey("expertises.code", ondelete="CASCADE"), nullable=False)

    user: Mapped["User"] = relationship(back_populates="expertises")
    expertise: Mapped["Expertise"] = relationship()


# -----------------------------
# Cases
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    property_type: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    postcode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Case(Base):
    __tablename__ = "cases"
    __table_args__ = (Index("ix_cases_status_created", "status", "created_at"),)

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id"), index=True, nullable=False)
    inspector_id: Mapped[Optional[str]] = mapped_column(String(40), ForeignKey("users.id"), index=True, nullable=True)
    property_id: Mapped[Optional[str]] = mapped_column(String(40), ForeignKey("properties.id"), nullable=True)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    urgency: Mapped[str] = mapped_column(String(20), nullable=False, default="moderate")
    building_number: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tenant: Mapped["User"] = relationship(foreign_keys=[tenant_id])
    inspector: Mapped[Optional["User"]] = relationship(foreign_keys=[inspector_id])
    property: Mapped[Optional["Property"]] = relationship()

    damages: Mapped[List["Damage"]] = relationship(back_populates="case", cascade="all, delete-orphan")
    timeline: Mapped[List["CaseTimeline"]] = relationship(
        back_populates="case", cascade="all, delete-orphan", order_by="CaseTimeline.id"
    )
    reports: Mapped[List["Report"]] = relationship(back_populates="case", cascade="all, delete-orphan")


class Damage(Base):
    __tablename__ = "damages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    case_id: Mapped[str] = mapped_column(String(40), ForeignKey("cases.id", ondelete="CASCADE"), index=True, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    damage_type: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    damage_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    case: Mapped["Case"] = relationship(back_populates="damages")
    photos: Mapped[List["DamagePhoto"]] = relationship(back_populates="damage", cascade="all, delete-orphan")


class DamagePhoto(Base):
    __tablename__ = "damage_photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    damage_id: Mapped[int] = mapped_column(Integer, ForeignKey("damages.id", ondelete="CASCADE"), index=True, nullable=False)
    photo_type: Mapped[str] = mapped_column(String(40), nullable=False, default="general")
    photo_url: Mapped[str] = mapped_column(String(500), nullable=False)

    damage: Mapped["Damage"] = relationship(back_populates="photos")


class CaseTimeline(Base):
    """Append-only."""

    __tablename__ = "case_timeline"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    case_id: Mapped[str] = mapped_column(String(40), ForeignKey("cases.id", ondelete="CASCADE"), index=True, nullable=False)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    case: Mapped["Case"] = relationship(back_populates="timeline")


class Report(Base):
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    case_id: Mapped[str] = mapped_column(String(40), ForeignKey("cases.id", ondelete="CASCADE"), index=True, nullable=False)
    inspector_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id"), index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pdf_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    case: Mapped["Case"] = relationship(back_populates="reports")
    items: Mapped[List["AssessmentItem"]] = relationship(back_populates="report", cascade="all, delete-orphan")
    summary: Mapped[Optional["AssessmentSummary"]] = relationship(
        back_populates="report", uselist=False, cascade="all, delete-orphan"
    )
    photos: Mapped[List["ReportPhoto"]] = relationship(back_populates="report", cascade="all, delete-orphan")


class ReportPhoto(Base):
    __tablename__ = "report_photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_id: Mapped[str] = mapped_column(String(40), ForeignKey("reports.id", ondelete="CASCADE"), index=True, nullable=False)
    photo_type: Mapped[str] = mapped_column(String(40), nullable=False, default="general")
    photo_url: Mapped[str] = mapped_column(String(500), nullable=False)

    report: Mapped["Report"] = relationship(back_populates="photos")


class AssessmentItem(Base):
    """Sums are stored exactly as submitted."""

    __tablename__ = "assessment_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_id: Mapped[str] = mapped_column(String(40), ForeignKey("reports.id", ondelete="CASCADE"), index=True, nullable=False)
    item: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    unit_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    hours: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    hourly_rate: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    sum_material: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    sum_work: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    sum_post: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    report: Mapped["Report"] = relationship(back_populates="items")


class AssessmentSummary(Base):
    __tablename__ = "assessment_summaries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_id: Mapped[str] = mapped_column(String(40), ForeignKey("reports.id", ondelete="CASCADE"), unique=True, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_sum_materials: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_sum_labor: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    sum_excl_vat: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    vat: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    sum_incl_vat: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    report: Mapped["Report"] = relationship(back_populates="summary")


class TrackingTime(Base):
    __tablename__ = "tracking_times"
    __table_args__ = (Index("ix_tracking_times_case_inspector", "case_id", "inspector_id", "is_active"),)

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    case_id: Mapped[str] = mapped_column(String(40), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    inspector_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id"), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


# -----------------------------
# Money
# -----------------------------
class Payment(Base):
    """Tenant-side payment."""

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    case_id: Mapped[Optional[str]] = mapped_column(String(40), ForeignKey("cases.id"), index=True, nullable=True)
    tenant_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id"), index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="nok")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending|processed|rejected
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(120), unique=True, nullable=True)
    paid_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    case: Mapped[Optional["Case"]] = relationship()
    tenant: Mapped["User"] = relationship()


class InspectorPayment(Base):
    """Inspector payout ledger entry."""

    __tablename__ = "inspector_payments"
    __table_args__ = (UniqueConstraint("inspector_id", "case_id", name="uq_inspector_payments_case"),)

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    inspector_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id"), index=True, nullable=False)
    case_id: Mapped[Optional[str]] = mapped_column(String(40), ForeignKey("cases.id"), nullable=True)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending|requested|processed|rejected
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    requested_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    inspector: Mapped["User"] = relationship()
    case: Mapped[Optional["Case"]] = relationship()


class Refund(Base):
    __tablename__ = "refunds"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    case_id: Mapped[str] = mapped_column(String(40), ForeignKey("cases.id"), index=True, nullable=False)
    payment_id: Mapped[Optional[str]] = mapped_column(String(40), ForeignKey("payments.id"), nullable=True)
    tenant_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id"), index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending|processed|rejected
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    request_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    case: Mapped["Case"] = relationship()
    tenant: Mapped["User"] = relationship()


# -----------------------------
# Chat
# -----------------------------
class Conversation(Base):
    """
    The pair is stored ordered (user_one_id < user_two_id) so the unique
    constraint covers the unordered pair.
    """

    __tablename__ = "conversations"
    __table_args__ = (UniqueConstraint("user_one_id", "user_two_id", name="uq_conversations_pair"),)

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    user_one_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    user_two_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    last_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_message_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    user_one: Mapped["User"] = relationship(foreign_keys=[user_one_id])
    user_two: Mapped["User"] = relationship(foreign_keys=[user_two_id])


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    conversation_id: Mapped[str] = mapped_column(
        String(40), ForeignKey("conversations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    sender_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_read", "user_id", "is_read"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[str] = mapped_column(String(40), nullable=False, default="system")
    case_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


# -----------------------------
# Audit + platform config
# -----------------------------
class ActionLog(Base):
    __tablename__ = "action_logs"
    __table_args__ = (
        CheckConstraint("inspector_id IS NOT NULL OR admin_id IS NOT NULL", name="ck_action_logs_actor"),
        Index("ix_action_logs_type_created", "action_type", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    inspector_id: Mapped[Optional[str]] = mapped_column(String(40), index=True, nullable=True)
    admin_id: Mapped[Optional[str]] = mapped_column(String(40), index=True, nullable=True)
    action_type: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    case_id: Mapped[Optional[str]] = mapped_column(String(40), index=True, nullable=True)
    metadata_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class PlatformSettings(Base):
    __tablename__ = "platform_settings"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default="PLATFORM_SETTINGS")
    default_language: Mapped[str] = mapped_column(String(5), nullable=False, default="en")  # en|no|nb
    payment_threshold: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    refund_policy_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    base_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("100"))
    haste_case_fee: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("50"))
    haste_case_deadline_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
    normal_case_deadline_days: Mapped[int] = mapped_column(Integer, nullable=False, default=14)
    gdpr_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    data_retention_days: Mapped[int] = mapped_column(Integer, nullable=False, default=365)
    inspector_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("40"))
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
