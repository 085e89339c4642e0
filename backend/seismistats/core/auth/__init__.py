"""Administrative access control."""

from seismistats.core.auth.dependencies import AdminAccess, require_admin_mode

__all__ = ["AdminAccess", "require_admin_mode"]
