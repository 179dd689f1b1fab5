# SQLModel definitions, imported here so metadata is populated before create_all.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .organization import Organization  # noqa: F401
from .conference import Conference  # noqa: F401
from .tenant import Tenant  # noqa: F401
from .membership import OrgMember, ConferenceMember, TenantMembership  # noqa: F401
from .invite import Invite  # noqa: F401
