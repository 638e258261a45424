from carebridge.models.account import (
    Account,
    AccountEmailVerification,
    AccountSourceId,
    PasswordResetRequest,
    RoleId,
)
from carebridge.models.activity_tracking import ActivityActionId, ActivityTracking, ActivityTypeId
from carebridge.models.appointment import Appointment, AppointmentType, AttendanceStatusId, VisitTypeId
from carebridge.models.assessment import (
    AccountSession,
    AccountSessionAnswer,
    Answer,
    Assessment,
    AssessmentTypeId,
    Question,
    QuestionTypeId,
)
from carebridge.models.audit_log import AuditLog, AuditLogEventId
from carebridge.models.availability import LogicalAvailability, LogicalAvailabilityTypeId, RecurrenceTypeId
from carebridge.models.content import ApprovalStatusId, Content, ContentTypeId
from carebridge.models.faq import Faq, FaqTopic
from carebridge.models.group_session import (
    GroupSession,
    GroupSessionCollection,
    GroupSessionRequest,
    GroupSessionRequestStatusId,
    GroupSessionReservation,
    GroupSessionSchedulingSystemId,
    GroupSessionStatusId,
)
from carebridge.models.institution import CrisisContact, Institution, InstitutionLocation
from carebridge.models.message import MessageLog, MessageLogEvent, MessageStatusId, MessageTypeId, MessageVendorId
from carebridge.models.provider import CalendarPermission, CalendarPermissionId, Provider, SchedulingSystemId

__all__ = [
    "Institution",
    "InstitutionLocation",
    "CrisisContact",
    "Account",
    "AccountEmailVerification",
    "AccountSourceId",
    "PasswordResetRequest",
    "RoleId",
    "Provider",
    "SchedulingSystemId",
    "CalendarPermission",
    "CalendarPermissionId",
    "AppointmentType",
    "Appointment",
    "AttendanceStatusId",
    "VisitTypeId",
    "LogicalAvailability",
    "LogicalAvailabilityTypeId",
    "RecurrenceTypeId",
    "GroupSession",
    "GroupSessionCollection",
    "GroupSessionReservation",
    "GroupSessionSchedulingSystemId",
    "GroupSessionStatusId",
    "GroupSessionRequest",
    "GroupSessionRequestStatusId",
    "FaqTopic",
    "Faq",
    "Content",
    "ContentTypeId",
    "ApprovalStatusId",
    "Assessment",
    "AssessmentTypeId",
    "Question",
    "QuestionTypeId",
    "Answer",
    "AccountSession",
    "AccountSessionAnswer",
    "MessageLog",
    "MessageLogEvent",
    "MessageStatusId",
    "MessageTypeId",
    "MessageVendorId",
    "AuditLog",
    "AuditLogEventId",
    "ActivityTracking",
    "ActivityTypeId",
    "ActivityActionId",
]
