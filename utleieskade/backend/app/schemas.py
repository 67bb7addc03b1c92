# backend/app/schemas.py
from __future__ import annotations

import re
from decimal import Decimal
from typing import Annotated, Optional, List, Literal

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ApiModel(BaseModel):
    """Request bodies use the camelCase field names the front-ends send."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _clean_email(v: str) -> str:
    v = (v or "").strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("A valid email is required")
    return v


Email = Annotated[str, AfterValidator(_clean_email)]


# -------------------- Users / auth --------------------

class SignupIn(ApiModel):
    user_first_name: str = Field(min_length=1)
    user_last_name: str = Field(min_length=1)
    user_email: Email
    user_password: str = Field(min_length=6)
    user_phone: Optional[str] = None
    user_city: Optional[str] = None
    user_postcode: Optional[str] = None
    user_address: Optional[str] = None
    user_country: Optional[str] = None
    user_gender: Optional[str] = None
    user_type: Literal["tenant", "landlord"] = "tenant"


class AdminSignupIn(ApiModel):
    user_first_name: str = Field(min_length=1)
    user_last_name: str = Field(min_length=1)
    user_email: Email
    user_password: str = Field(min_length=6)
    user_phone: Optional[str] = None
    user_city: Optional[str] = None
    user_postcode: Optional[str] = None
    user_address: Optional[str] = None
    user_country: Optional[str] = None


class SubAdminIn(ApiModel):
    user_first_name: str = Field(min_length=1)
    user_last_name: str = Field(min_length=1)
    user_email: Email
    user_password: str = Field(min_length=6)


class AdminUpdateIn(ApiModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class LoginIn(ApiModel):
    user_email: str = ""
    user_password: str = ""


class ProfileUpdateIn(ApiModel):
    user_first_name: Optional[str] = None
    user_last_name: Optional[str] = None
    user_phone: Optional[str] = None
    user_city: Optional[str] = None
    user_postcode: Optional[str] = None
    user_address: Optional[str] = None
    user_country: Optional[str] = None
    user_gender: Optional[str] = None
    user_profile_pic: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class PasswordResetIn(ApiModel):
    user_password: str = ""


class ChangePasswordIn(ApiModel):
    current_password: str = ""
    new_password: str = ""


class OtpRequestIn(ApiModel):
    user_email: Email


class OtpVerifyIn(ApiModel):
    user_email: Email
    otp_code: str


# -------------------- Inspectors --------------------

class InspectorCreateIn(ApiModel):
    user_first_name: str = Field(min_length=1)
    user_last_name: str = Field(min_length=1)
    user_email: Email
    user_phone: Optional[str] = None
    user_city: Optional[str] = None
    user_postcode: Optional[str] = None
    user_address: Optional[str] = None
    user_country: Optional[str] = None
    user_gender: Optional[str] = None
    expertise_codes: List[int] = Field(default_factory=list)


class InspectorAdminUpdateIn(ApiModel):
    user_first_name: Optional[str] = None
    user_last_name: Optional[str] = None
    user_email: Optional[str] = None
    user_phone: Optional[str] = None
    user_city: Optional[str] = None
    user_postcode: Optional[str] = None
    user_address: Optional[str] = None
    user_country: Optional[str] = None
    user_status: Optional[str] = None
    expertise_codes: Optional[List[int]] = None


class NotificationSettingsIn(ApiModel):
    deadline_notifications: Optional[bool] = None
    new_case_alerts: Optional[bool] = None
    tenants_updates: Optional[bool] = None
    message_notifications: Optional[bool] = None


class BankDetailsIn(ApiModel):
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    sort_code: Optional[str] = None


class InspectorSettingsIn(ApiModel):
    notification_settings: Optional[NotificationSettingsIn] = None
    bank_details: Optional[BankDetailsIn] = None
    pause_mode: Optional[bool] = None
    expertises: Optional[List[int]] = None
    user_phone: Optional[str] = None
    user_city: Optional[str] = None
    user_address: Optional[str] = None
    user_postcode: Optional[str] = None


class PayoutRequestIn(ApiModel):
    amount: Decimal
    user_password: str = ""


class EarningsReportIn(ApiModel):
    month: int
    year: int


class HoldIn(ApiModel):
    hold_reason: Optional[str] = None


# -------------------- Tenants --------------------

class TenantSettingsIn(ApiModel):
    essential_cookies: Optional[bool] = None
    third_party_sharing: Optional[bool] = None


# -------------------- Cases --------------------

class DamagePhotoIn(ApiModel):
    photo_type: Optional[str] = "general"
    photo_url: Optional[str] = None


class DamageIn(ApiModel):
    damage_location: Optional[str] = None
    damage_type: Optional[str] = None
    damage_description: Optional[str] = None
    damage_date: Optional[str] = None
    damage_photos: List[DamagePhotoIn] = Field(
        default_factory=list, validation_alias=AliasChoices("damagePhotos", "photos", "damage_photos")
    )


class CaseCreateIn(ApiModel):
    property_id: Optional[str] = None
    property_address: Optional[str] = None
    property_city: Optional[str] = None
    property_postcode: Optional[str] = None
    property_country: Optional[str] = None
    property_type: Optional[str] = None
    building_number: Optional[str] = None
    case_description: str = ""
    case_urgency: Literal["high", "moderate", "low"] = "moderate"
    case_deadline: Optional[str] = None
    damages: List[DamageIn] = Field(default_factory=list)


class CaseStatusIn(ApiModel):
    status: Optional[str] = None


class CancelCaseIn(ApiModel):
    cancellation_reason: Optional[str] = None


class AssignCaseIn(ApiModel):
    inspector_id: Optional[str] = None


class ExtendDeadlineIn(ApiModel):
    new_deadline: Optional[str] = None
    reason: Optional[str] = None


class AssessmentItemIn(ApiModel):
    item: str
    quantity: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")
    hours: Decimal = Decimal("0")
    hourly_rate: Decimal = Decimal("0")
    sum_material: Decimal = Decimal("0")
    sum_work: Decimal = Decimal("0")
    sum_post: Decimal = Decimal("0")


class AssessmentSummaryIn(ApiModel):
    total_hours: Decimal = Decimal("0")
    total_sum_materials: Decimal = Decimal("0")
    total_sum_labor: Decimal = Decimal("0")
    sum_excl_vat: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("sumExclVAT", "sumExclVat", "sum_excl_vat")
    )
    vat: Decimal = Decimal("0")
    sum_incl_vat: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("sumInclVAT", "sumInclVat", "sum_incl_vat")
    )
    total: Decimal = Decimal("0")


class ReportPhotoIn(ApiModel):
    photo_type: Optional[str] = "general"
    photo_url: Optional[str] = None


class ReportAssessmentIn(ApiModel):
    case_id: Optional[str] = None
    report_description: Optional[str] = None
    items: List[AssessmentItemIn] = Field(default_factory=list)
    summary: Optional[AssessmentSummaryIn] = None
    photos: List[ReportPhotoIn] = Field(default_factory=list)


# -------------------- Payments / refunds --------------------

class PaymentIntentIn(ApiModel):
    amount: Optional[Decimal] = None
    case_urgency: Literal["high", "moderate", "low"] = "moderate"


class PaymentConfirmIn(CaseCreateIn):
    payment_intent_id: str = ""


class RejectIn(ApiModel):
    rejection_reason: Optional[str] = None


class RefundRequestIn(ApiModel):
    case_id: str
    amount: Optional[Decimal] = None
    reason: Optional[str] = None


# -------------------- Chat --------------------

class SendMessageIn(ApiModel):
    receiver_id: str = ""
    message_text: str = ""


class FindOrCreateIn(ApiModel):
    user_id: str = ""


# -------------------- Expertise --------------------

class ExpertiseIn(ApiModel):
    expertise_area: str = Field(min_length=1)
    expertise_description: Optional[str] = None


class ExpertiseUpdateIn(ApiModel):
    expertise_area: Optional[str] = None
    expertise_description: Optional[str] = None


# -------------------- Notifications --------------------

class SystemNotificationIn(ApiModel):
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    user_id: str


class MassNotificationIn(ApiModel):
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    user_types: List[str] = Field(default_factory=list)


# -------------------- Settings --------------------

class PlatformSettingsPatch(ApiModel):
    default_language: Optional[Literal["en", "no", "nb"]] = None
    payment_threshold: Optional[Decimal] = Field(default=None, ge=0)
    refund_policy_days: Optional[int] = Field(default=None, ge=0)
    base_price: Optional[Decimal] = Field(default=None, ge=0)
    haste_case_fee: Optional[Decimal] = Field(default=None, ge=0)
    haste_case_deadline_days: Optional[int] = Field(default=None, ge=1)
    normal_case_deadline_days: Optional[int] = Field(default=None, ge=1)
    gdpr_enabled: Optional[bool] = None
    data_retention_days: Optional[int] = Field(default=None, ge=1)
    inspector_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)


class DataDeletionIn(ApiModel):
    user_id: str
