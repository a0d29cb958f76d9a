"""Core domain models."""

from core.models.member import Member, MemberCreate, MemberRole, PRIVILEGED_ROLES
from core.models.lead import (
    Lead, LeadCreate, LeadUpdate, LeadFilter, LeadStatus, LeadSource,
    Priority, PropertyType, ListingType,
)
from core.models.task import (
    Task, TaskCreate, TaskUpdate, TaskStatus, TaskType,
    DueClassification, OPEN_TASK_STATUSES,
)
from core.models.deal import Deal, DealCreate, DealStatus
from core.models.activity import (
    Activity, ActivityCreate, ActivityType, CallOutcome, CONTACT_ACTIVITY_TYPES,
)
from core.models.notification import (
    Notification, NotificationType, NotificationRef, RefKind,
    NotificationDelivery, DeliveryStatus,
)

__all__ = [
    # Member
    "Member", "MemberCreate", "MemberRole", "PRIVILEGED_ROLES",
    # Lead
    "Lead", "LeadCreate", "LeadUpdate", "LeadFilter", "LeadStatus", "LeadSource",
    "Priority", "PropertyType", "ListingType",
    # Task
    "Task", "TaskCreate", "TaskUpdate", "TaskStatus", "TaskType",
    "DueClassification", "OPEN_TASK_STATUSES",
    # Deal
    "Deal", "DealCreate", "DealStatus",
    # Activity
    "Activity", "ActivityCreate", "ActivityType", "CallOutcome", "CONTACT_ACTIVITY_TYPES",
    # Notification
    "Notification", "NotificationType", "NotificationRef", "RefKind",
    "NotificationDelivery", "DeliveryStatus",
]
