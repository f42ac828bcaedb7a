"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from canvass_api.models.audit_log import AuditLog
from canvass_api.models.import_job import ImportJob
from canvass_api.models.interaction import Interaction
from canvass_api.models.merge_alert import MergeAlert
from canvass_api.models.organization import Organization
from canvass_api.models.platform_event import PlatformEvent
from canvass_api.models.user import User
from canvass_api.models.voter import Voter
from canvass_api.models.walk_list import ListMember, WalkList

__all__ = [
    "AuditLog",
    "ImportJob",
    "Interaction",
    "ListMember",
    "MergeAlert",
    "Organization",
    "PlatformEvent",
    "User",
    "Voter",
    "WalkList",
]
