"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(12, 2)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("postcode", sa.String(length=20), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("country", sa.String(length=80), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("profile_pic", sa.String(length=500), nullable=True),
        sa.Column("user_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_user_type", "users", ["user_type"])

    op.create_table(
        "otps",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code_hash", sa.String(length=255), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_otps_user_id", "otps", ["user_id"])

    op.create_table(
        "bank_details",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("bank_name", sa.String(length=120), nullable=True),
        sa.Column("account_number", sa.String(length=40), nullable=True),
        sa.Column("sort_code", sa.String(length=20), nullable=True),
    )

    op.create_table(
        "notification_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("deadline_notifications", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("new_case_alerts", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("tenants_updates", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("message_notifications", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "privacy_policy_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("essential_cookies", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("third_party_sharing", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "expertises",
        sa.Column("code", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("area", sa.String(length=120), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
    )

    op.create_table(
        "user_expertises",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("expertise_code", sa.Integer(), sa.ForeignKey("expertises.code", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("user_id", "expertise_code", name="uq_user_expertises_user_code"),
    )
    op.create_index("ix_user_expertises_user_id", "user_expertises", ["user_id"])

    op.create_table(
        "properties",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("property_type", sa.String(length=60), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("postcode", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=80), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_properties_address", "properties", ["address"])

    op.create_table(
        "cases",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("tenant_id", sa.String(length=40), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("inspector_id", sa.String(length=40), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("property_id", sa.String(length=40), sa.ForeignKey("properties.id"), nullable=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        sa.Column("urgency", sa.String(length=20), nullable=False, server_default="moderate"),
        sa.Column("building_number", sa.String(length=40), nullable=True),
        sa.Column("deadline", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_cases_tenant_id", "cases", ["tenant_id"])
    op.create_index("ix_cases_inspector_id", "cases", ["inspector_id"])
    op.create_index("ix_cases_status_created", "cases", ["status", "created_at"])

    op.create_table(
        "damages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("case_id", sa.String(length=40), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("damage_type", sa.String(length=120), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("damage_date", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_damages_case_id", "damages", ["case_id"])

    op.create_table(
        "damage_photos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("damage_id", sa.Integer(), sa.ForeignKey("damages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("photo_type", sa.String(length=40), nullable=False, server_default="general"),
        sa.Column("photo_url", sa.String(length=500), nullable=False),
    )
    op.create_index("ix_damage_photos_damage_id", "damage_photos", ["damage_id"])

    op.create_table(
        "case_timeline",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("case_id", sa.String(length=40), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", sa.String(length=40), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_case_timeline_case_id", "case_timeline", ["case_id"])

    op.create_table(
        "reports",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("case_id", sa.String(length=40), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("inspector_id", sa.String(length=40), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("pdf_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_reports_case_id", "reports", ["case_id"])
    op.create_index("ix_reports_inspector_id", "reports", ["inspector_id"])

    op.create_table(
        "report_photos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("report_id", sa.String(length=40), sa.ForeignKey("reports.id", ondelete="CASCADE"), nullable=False),
        sa.Column("photo_type", sa.String(length=40), nullable=False, server_default="general"),
        sa.Column("photo_url", sa.String(length=500), nullable=False),
    )
    op.create_index("ix_report_photos_report_id", "report_photos", ["report_id"])

    op.create_table(
        "assessment_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("report_id", sa.String(length=40), sa.ForeignKey("reports.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item", sa.String(length=255), nullable=False),
        sa.Column("quantity", MONEY, nullable=False, server_default="0"),
        sa.Column("unit_price", MONEY, nullable=False, server_default="0"),
        sa.Column("hours", MONEY, nullable=False, server_default="0"),
        sa.Column("hourly_rate", MONEY, nullable=False, server_default="0"),
        sa.Column("sum_material", MONEY, nullable=False, server_default="0"),
        sa.Column("sum_work", MONEY, nullable=False, server_default="0"),
        sa.Column("sum_post", MONEY, nullable=False, server_default="0"),
    )
    op.create_index("ix_assessment_items_report_id", "assessment_items", ["report_id"])

    op.create_table(
        "assessment_summaries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("report_id", sa.String(length=40), sa.ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("total_hours", MONEY, nullable=False, server_default="0"),
        sa.Column("total_sum_materials", MONEY, nullable=False, server_default="0"),
        sa.Column("total_sum_labor", MONEY, nullable=False, server_default="0"),
        sa.Column("sum_excl_vat", MONEY, nullable=False, server_default="0"),
        sa.Column("vat", MONEY, nullable=False, server_default="0"),
        sa.Column("sum_incl_vat", MONEY, nullable=False, server_default="0"),
        sa.Column("total", MONEY, nullable=False, server_default="0"),
    )

    op.create_table(
        "tracking_times",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("case_id", sa.String(length=40), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("inspector_id", sa.String(length=40), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_tracking_times_case_inspector", "tracking_times", ["case_id", "inspector_id", "is_active"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("case_id", sa.String(length=40), sa.ForeignKey("cases.id"), nullable=True),
        sa.Column("tenant_id", sa.String(length=40), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="nok"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(length=120), nullable=True, unique=True),
        sa.Column("paid_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_payments_case_id", "payments", ["case_id"])
    op.create_index("ix_payments_tenant_id", "payments", ["tenant_id"])

    op.create_table(
        "inspector_payments",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("inspector_id", sa.String(length=40), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("case_id", sa.String(length=40), sa.ForeignKey("cases.id"), nullable=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("payment_date", sa.DateTime(), nullable=False),
        sa.Column("requested_at", sa.DateTime(), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("inspector_id", "case_id", name="uq_inspector_payments_case"),
    )
    op.create_index("ix_inspector_payments_inspector_id", "inspector_payments", ["inspector_id"])

    op.create_table(
        "refunds",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("case_id", sa.String(length=40), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("payment_id", sa.String(length=40), sa.ForeignKey("payments.id"), nullable=True),
        sa.Column("tenant_id", sa.String(length=40), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("request_date", sa.DateTime(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_refunds_case_id", "refunds", ["case_id"])
    op.create_index("ix_refunds_tenant_id", "refunds", ["tenant_id"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("user_one_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_two_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("last_message", sa.Text(), nullable=True),
        sa.Column("last_message_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_one_id", "user_two_id", name="uq_conversations_pair"),
    )
    op.create_index("ix_conversations_user_one_id", "conversations", ["user_one_id"])
    op.create_index("ix_conversations_user_two_id", "conversations", ["user_two_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("conversation_id", sa.String(length=40), sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("sent_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_messages_conversation_id", "messages", ["conversation_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("notification_type", sa.String(length=40), nullable=False, server_default="system"),
        sa.Column("case_id", sa.String(length=40), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])

    op.create_table(
        "action_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("inspector_id", sa.String(length=40), nullable=True),
        sa.Column("admin_id", sa.String(length=40), nullable=True),
        sa.Column("action_type", sa.String(length=60), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("case_id", sa.String(length=40), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("inspector_id IS NOT NULL OR admin_id IS NOT NULL", name="ck_action_logs_actor"),
    )
    op.create_index("ix_action_logs_inspector_id", "action_logs", ["inspector_id"])
    op.create_index("ix_action_logs_admin_id", "action_logs", ["admin_id"])
    op.create_index("ix_action_logs_case_id", "action_logs", ["case_id"])
    op.create_index("ix_action_logs_type_created", "action_logs", ["action_type", "created_at"])

    op.create_table(
        "platform_settings",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("default_language", sa.String(length=5), nullable=False, server_default="en"),
        sa.Column("payment_threshold", MONEY, nullable=False, server_default="0"),
        sa.Column("refund_policy_days", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("base_price", MONEY, nullable=False, server_default="100"),
        sa.Column("haste_case_fee", MONEY, nullable=False, server_default="50"),
        sa.Column("haste_case_deadline_days", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("normal_case_deadline_days", sa.Integer(), nullable=False, server_default="14"),
        sa.Column("gdpr_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("data_retention_days", sa.Integer(), nullable=False, server_default="365"),
        sa.Column("inspector_percentage", sa.Numeric(5, 2), nullable=False, server_default="40"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )


def downgrade():
    for table in (
        "platform_settings",
        "action_logs",
        "notifications",
        "messages",
        "conversations",
        "refunds",
        "inspector_payments",
        "payments",
        "tracking_times",
        "assessment_summaries",
        "assessment_items",
        "report_photos",
        "reports",
        "case_timeline",
        "damage_photos",
        "damages",
        "cases",
        "properties",
        "user_expertises",
        "expertises",
        "privacy_policy_settings",
        "notification_settings",
        "bank_details",
        "otps",
        "users",
    ):
        op.drop_table(table)
