# Import all models so Base.metadata is populated for create_all.
from provider_admin.models.user import AdminGrant, User  # noqa: F401
from provider_admin.models.session import Session  # noqa: F401
from provider_admin.models.provider import Provider  # noqa: F401
from provider_admin.models.review import Review  # noqa: F401
from provider_admin.models.activity_log import ActivityLogEntry  # noqa: F401
