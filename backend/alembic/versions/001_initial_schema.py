"""Initial schema: institutions, accounts, providers, scheduling, group sessions,
content, FAQs, assessments, messaging and audit tables

Revision ID: 001_initial
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""

import sqlalchemy as sa
from sqlmodel.sql.sqltypes import GUID

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None

_INDEXES = [
    ("institution_location", "institution_id"),
    ("crisis_contact", "institution_id"),
    ("assessment", "assessment_type_id"),
    ("question", "assessment_id"),
    ("answer", "question_id"),
    ("provider", "institution_id"),
    ("provider", "acuity_calendar_id"),
    ("account", "institution_id"),
    ("account", "email_address"),
    ("account_email_verification", "account_id"),
    ("password_reset_request", "account_id"),
    ("account_calendar_permission", "account_id"),
    ("account_calendar_permission", "provider_id"),
    ("appointment_type", "provider_id"),
    ("appointment", "provider_id"),
    ("appointment", "account_id"),
    ("appointment", "acuity_appointment_id"),
    ("logical_availability", "provider_id"),
    ("group_session_collection", "institution_id"),
    ("group_session", "institution_id"),
    ("group_session_reservation", "group_session_id"),
    ("group_session_reservation", "account_id"),
    ("group_session_request", "institution_id"),
    ("faq_topic", "institution_id"),
    ("faq", "institution_id"),
    ("faq", "faq_topic_id"),
    ("content", "institution_id"),
    ("account_session", "account_id"),
    ("account_session", "assessment_id"),
    ("account_session_answer", "account_session_id"),
    ("message_log", "institution_id"),
    ("message_log", "vendor_assigned_id"),
    ("message_log_event", "message_id"),
    ("audit_log", "audit_log_event_id"),
    ("activity_tracking", "account_id"),
    ("activity_tracking", "session_tracking_id"),
]


def upgrade() -> None:
    op.create_table(
        "institution",
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("time_zone", sa.String(), nullable=False),
        sa.Column("locale", sa.String(), nullable=False),
        sa.Column("support_email_address", sa.String(), nullable=True),
        sa.Column("email_verification_required", sa.Boolean(), nullable=False),
        sa.Column("group_sessions_enabled", sa.Boolean(), nullable=False),
        sa.Column("anonymous_enabled", sa.Boolean(), nullable=False),
        sa.Column("email_enabled", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("institution_id"),
    )

    op.create_table(
        "institution_location",
        sa.Column("institution_location_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("institution_location_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
    )

    op.create_table(
        "crisis_contact",
        sa.Column("crisis_contact_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("email_address", sa.String(), nullable=False),
        sa.Column("locale", sa.String(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("crisis_contact_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
    )

    # Assessments
    op.create_table(
        "assessment",
        sa.Column("assessment_id", GUID(), nullable=False),
        sa.Column("assessment_type_id", sa.String(), nullable=False),
        sa.Column("base_question", sa.String(), nullable=True),
        sa.Column("next_assessment_id", GUID(), nullable=True),
        sa.Column("minimum_eligibility_score", sa.Integer(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("assessment_id"),
        sa.ForeignKeyConstraint(["next_assessment_id"], ["assessment.assessment_id"]),
    )

    op.create_table(
        "question",
        sa.Column("question_id", GUID(), nullable=False),
        sa.Column("assessment_id", GUID(), nullable=False),
        sa.Column("question_type_id", sa.String(), nullable=False),
        sa.Column("question_text", sa.String(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("question_id"),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessment.assessment_id"]),
    )

    op.create_table(
        "answer",
        sa.Column("answer_id", GUID(), nullable=False),
        sa.Column("question_id", GUID(), nullable=False),
        sa.Column("answer_text", sa.String(), nullable=False),
        sa.Column("answer_value", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("crisis", sa.Boolean(), nullable=False),
        sa.Column("next_question_id", GUID(), nullable=True),
        sa.PrimaryKeyConstraint("answer_id"),
        sa.ForeignKeyConstraint(["question_id"], ["question.question_id"]),
        sa.ForeignKeyConstraint(["next_question_id"], ["question.question_id"]),
    )

    # Providers and accounts
    op.create_table(
        "provider",
        sa.Column("provider_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("email_address", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("bio", sa.String(), nullable=True),
        sa.Column("time_zone", sa.String(), nullable=False),
        sa.Column("locale", sa.String(), nullable=False),
        sa.Column("scheduling_system_id", sa.String(), nullable=False),
        sa.Column("acuity_calendar_id", sa.Integer(), nullable=True),
        sa.Column("intake_assessment_id", GUID(), nullable=True),
        sa.Column("videoconference_url", sa.String(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("provider_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
        sa.ForeignKeyConstraint(["intake_assessment_id"], ["assessment.assessment_id"]),
    )

    op.create_table(
        "account",
        sa.Column("account_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("role_id", sa.String(), nullable=False),
        sa.Column("account_source_id", sa.String(), nullable=False),
        sa.Column("provider_id", GUID(), nullable=True),
        sa.Column("email_address", sa.String(), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("password", sa.String(), nullable=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("time_zone", sa.String(), nullable=True),
        sa.Column("locale", sa.String(), nullable=True),
        sa.Column("consent_form_accepted", sa.Boolean(), nullable=False),
        sa.Column("consent_form_accepted_date", sa.DateTime(), nullable=True),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("account_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
        sa.ForeignKeyConstraint(["provider_id"], ["provider.provider_id"]),
    )

    op.create_table(
        "account_email_verification",
        sa.Column("account_email_verification_id", GUID(), nullable=False),
        sa.Column("account_id", GUID(), nullable=False),
        sa.Column("email_address", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("expiration", sa.DateTime(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("account_email_verification_id"),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"]),
    )

    op.create_table(
        "password_reset_request",
        sa.Column("password_reset_request_id", GUID(), nullable=False),
        sa.Column("account_id", GUID(), nullable=False),
        sa.Column("password_reset_token", sa.String(), nullable=False),
        sa.Column("expiration", sa.DateTime(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("password_reset_request_id"),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"]),
        sa.UniqueConstraint("password_reset_token", name="uq_password_reset_token"),
    )

    op.create_table(
        "account_calendar_permission",
        sa.Column("account_calendar_permission_id", GUID(), nullable=False),
        sa.Column("account_id", GUID(), nullable=False),
        sa.Column("provider_id", GUID(), nullable=False),
        sa.Column("calendar_permission_id", sa.String(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("account_calendar_permission_id"),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"]),
        sa.ForeignKeyConstraint(["provider_id"], ["provider.provider_id"]),
        sa.UniqueConstraint("account_id", "provider_id", name="uq_account_provider_permission"),
    )

    # Scheduling
    op.create_table(
        "appointment_type",
        sa.Column("appointment_type_id", GUID(), nullable=False),
        sa.Column("provider_id", GUID(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("duration_in_minutes", sa.Integer(), nullable=False),
        sa.Column("visit_type_id", sa.String(), nullable=False),
        sa.Column("scheduling_system_id", sa.String(), nullable=False),
        sa.Column("acuity_appointment_type_id", sa.Integer(), nullable=True),
        sa.Column("deleted", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("appointment_type_id"),
        sa.ForeignKeyConstraint(["provider_id"], ["provider.provider_id"]),
    )

    op.create_table(
        "appointment",
        sa.Column("appointment_id", GUID(), nullable=False),
        sa.Column("provider_id", GUID(), nullable=False),
        sa.Column("account_id", GUID(), nullable=False),
        sa.Column("created_by_account_id", GUID(), nullable=False),
        sa.Column("appointment_type_id", GUID(), nullable=False),
        sa.Column("acuity_appointment_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("comment", sa.String(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("duration_in_minutes", sa.Integer(), nullable=False),
        sa.Column("time_zone", sa.String(), nullable=False),
        sa.Column("videoconference_url", sa.String(), nullable=True),
        sa.Column("attendance_status_id", sa.String(), nullable=False),
        sa.Column("canceled", sa.Boolean(), nullable=False),
        sa.Column("canceled_at", sa.DateTime(), nullable=True),
        sa.Column("canceled_by_webhook", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("appointment_id"),
        sa.ForeignKeyConstraint(["provider_id"], ["provider.provider_id"]),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"]),
        sa.ForeignKeyConstraint(["created_by_account_id"], ["account.account_id"]),
        sa.ForeignKeyConstraint(["appointment_type_id"], ["appointment_type.appointment_type_id"]),
    )

    op.create_table(
        "logical_availability",
        sa.Column("logical_availability_id", GUID(), nullable=False),
        sa.Column("provider_id", GUID(), nullable=False),
        sa.Column("logical_availability_type_id", sa.String(), nullable=False),
        sa.Column("recurrence_type_id", sa.String(), nullable=False),
        sa.Column("start_date_time", sa.DateTime(), nullable=False),
        sa.Column("end_date_time", sa.DateTime(), nullable=False),
        sa.Column("recur_monday", sa.Boolean(), nullable=False),
        sa.Column("recur_tuesday", sa.Boolean(), nullable=False),
        sa.Column("recur_wednesday", sa.Boolean(), nullable=False),
        sa.Column("recur_thursday", sa.Boolean(), nullable=False),
        sa.Column("recur_friday", sa.Boolean(), nullable=False),
        sa.Column("recur_saturday", sa.Boolean(), nullable=False),
        sa.Column("recur_sunday", sa.Boolean(), nullable=False),
        sa.Column("appointment_type_ids", sa.JSON(), nullable=True),
        sa.Column("created_by_account_id", GUID(), nullable=True),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("logical_availability_id"),
        sa.ForeignKeyConstraint(["provider_id"], ["provider.provider_id"]),
        sa.ForeignKeyConstraint(["created_by_account_id"], ["account.account_id"]),
    )

    # Group sessions
    op.create_table(
        "group_session_collection",
        sa.Column("group_session_collection_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("group_session_collection_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
    )

    op.create_table(
        "group_session",
        sa.Column("group_session_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("group_session_status_id", sa.String(), nullable=False),
        sa.Column("group_session_scheduling_system_id", sa.String(), nullable=False),
        sa.Column("group_session_collection_id", GUID(), nullable=True),
        sa.Column("assessment_id", GUID(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("url_name", sa.String(), nullable=False),
        sa.Column("facilitator_account_id", GUID(), nullable=True),
        sa.Column("facilitator_name", sa.String(), nullable=False),
        sa.Column("facilitator_email_address", sa.String(), nullable=False),
        sa.Column("submitter_account_id", GUID(), nullable=False),
        sa.Column("start_date_time", sa.DateTime(), nullable=False),
        sa.Column("end_date_time", sa.DateTime(), nullable=False),
        sa.Column("time_zone", sa.String(), nullable=False),
        sa.Column("seats", sa.Integer(), nullable=True),
        sa.Column("schedule_url", sa.String(), nullable=True),
        sa.Column("videoconference_url", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("visible_flag", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("group_session_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
        sa.ForeignKeyConstraint(
            ["group_session_collection_id"],
            ["group_session_collection.group_session_collection_id"],
        ),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessment.assessment_id"]),
        sa.ForeignKeyConstraint(["facilitator_account_id"], ["account.account_id"]),
        sa.ForeignKeyConstraint(["submitter_account_id"], ["account.account_id"]),
        sa.UniqueConstraint("institution_id", "url_name", name="uq_group_session_url_name"),
    )

    op.create_table(
        "group_session_reservation",
        sa.Column("group_session_reservation_id", GUID(), nullable=False),
        sa.Column("group_session_id", GUID(), nullable=False),
        sa.Column("account_id", GUID(), nullable=False),
        sa.Column("canceled", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("group_session_reservation_id"),
        sa.ForeignKeyConstraint(["group_session_id"], ["group_session.group_session_id"]),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"]),
    )

    op.create_table(
        "group_session_request",
        sa.Column("group_session_request_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("group_session_request_status_id", sa.String(), nullable=False),
        sa.Column("submitter_account_id", GUID(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("url_name", sa.String(), nullable=False),
        sa.Column("facilitator_account_id", GUID(), nullable=True),
        sa.Column("facilitator_name", sa.String(), nullable=False),
        sa.Column("facilitator_email_address", sa.String(), nullable=False),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("custom_question1", sa.String(), nullable=True),
        sa.Column("custom_question2", sa.String(), nullable=True),
        sa.Column("data_collection_enabled", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("group_session_request_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
        sa.ForeignKeyConstraint(["submitter_account_id"], ["account.account_id"]),
        sa.ForeignKeyConstraint(["facilitator_account_id"], ["account.account_id"]),
    )

    # FAQs
    op.create_table(
        "faq_topic",
        sa.Column("faq_topic_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("url_name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("faq_topic_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
        sa.UniqueConstraint("institution_id", "url_name", name="uq_faq_topic_url_name"),
    )

    op.create_table(
        "faq",
        sa.Column("faq_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("faq_topic_id", GUID(), nullable=False),
        sa.Column("url_name", sa.String(), nullable=False),
        sa.Column("question", sa.String(), nullable=False),
        sa.Column("answer", sa.String(), nullable=False),
        sa.Column("short_answer", sa.String(), nullable=True),
        sa.Column("permanently_visible", sa.Boolean(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("faq_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
        sa.ForeignKeyConstraint(["faq_topic_id"], ["faq_topic.faq_topic_id"]),
        sa.UniqueConstraint("institution_id", "url_name", name="uq_faq_url_name"),
    )

    # Content
    op.create_table(
        "content",
        sa.Column("content_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("content_type_id", sa.String(), nullable=False),
        sa.Column("approval_status_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("author", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("url", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("duration_in_minutes", sa.Integer(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False),
        sa.Column("created_by_account_id", GUID(), nullable=True),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("content_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
        sa.ForeignKeyConstraint(["created_by_account_id"], ["account.account_id"]),
    )

    # Assessment runs
    op.create_table(
        "account_session",
        sa.Column("account_session_id", GUID(), nullable=False),
        sa.Column("account_id", GUID(), nullable=False),
        sa.Column("assessment_id", GUID(), nullable=False),
        sa.Column("complete", sa.Boolean(), nullable=False),
        sa.Column("current_flag", sa.Boolean(), nullable=False),
        sa.Column("crisis_reported", sa.Boolean(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("account_session_id"),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"]),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessment.assessment_id"]),
    )

    op.create_table(
        "account_session_answer",
        sa.Column("account_session_answer_id", GUID(), nullable=False),
        sa.Column("account_session_id", GUID(), nullable=False),
        sa.Column("question_id", GUID(), nullable=False),
        sa.Column("answer_id", GUID(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("account_session_answer_id"),
        sa.ForeignKeyConstraint(["account_session_id"], ["account_session.account_session_id"]),
        sa.ForeignKeyConstraint(["question_id"], ["question.question_id"]),
        sa.ForeignKeyConstraint(["answer_id"], ["answer.answer_id"]),
    )

    # Messaging, audit and activity
    op.create_table(
        "message_log",
        sa.Column("message_id", GUID(), nullable=False),
        sa.Column("institution_id", sa.String(), nullable=False),
        sa.Column("message_type_id", sa.String(), nullable=False),
        sa.Column("message_vendor_id", sa.String(), nullable=False),
        sa.Column("message_status_id", sa.String(), nullable=False),
        sa.Column("vendor_assigned_id", sa.String(), nullable=True),
        sa.Column("recipient", sa.String(), nullable=False),
        sa.Column("subject", sa.String(), nullable=True),
        sa.Column("body", sa.String(), nullable=False),
        sa.Column("template", sa.String(), nullable=True),
        sa.Column("error_message", sa.String(), nullable=True),
        sa.Column("delivered", sa.DateTime(), nullable=True),
        sa.Column("delivery_failed", sa.DateTime(), nullable=True),
        sa.Column("delivery_failed_reason", sa.String(), nullable=True),
        sa.Column("complaint_registered", sa.DateTime(), nullable=True),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.Column("processed", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("message_id"),
        sa.ForeignKeyConstraint(["institution_id"], ["institution.institution_id"]),
    )

    op.create_table(
        "message_log_event",
        sa.Column("message_log_event_id", GUID(), nullable=False),
        sa.Column("message_id", GUID(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("message_log_event_id"),
        sa.ForeignKeyConstraint(["message_id"], ["message_log.message_id"]),
    )

    op.create_table(
        "audit_log",
        sa.Column("audit_log_id", GUID(), nullable=False),
        sa.Column("audit_log_event_id", sa.String(), nullable=False),
        sa.Column("account_id", GUID(), nullable=True),
        sa.Column("message", sa.String(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("audit_log_id"),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"]),
    )

    op.create_table(
        "activity_tracking",
        sa.Column("activity_tracking_id", GUID(), nullable=False),
        sa.Column("account_id", GUID(), nullable=False),
        sa.Column("session_tracking_id", GUID(), nullable=False),
        sa.Column("activity_type_id", sa.String(), nullable=False),
        sa.Column("activity_action_id", sa.String(), nullable=False),
        sa.Column("activity_key", sa.String(), nullable=True),
        sa.Column("context", sa.JSON(), nullable=True),
        sa.Column("created", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("activity_tracking_id"),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"]),
    )

    for table, column in _INDEXES:
        op.create_index(f"ix_{table}_{column}", table, [column])


def downgrade() -> None:
    for table, column in reversed(_INDEXES):
        op.drop_index(f"ix_{table}_{column}", table_name=table)

    for table in (
        "activity_tracking",
        "audit_log",
        "message_log_event",
        "message_log",
        "account_session_answer",
        "account_session",
        "content",
        "faq",
        "faq_topic",
        "group_session_request",
        "group_session_reservation",
        "group_session",
        "group_session_collection",
        "logical_availability",
        "appointment",
        "appointment_type",
        "account_calendar_permission",
        "password_reset_request",
        "account_email_verification",
        "account",
        "provider",
        "answer",
        "question",
        "assessment",
        "crisis_contact",
        "institution_location",
        "institution",
    ):
        op.drop_table(table)
