# Authentication module

from eservice.modules.auth.dependencies import (
    get_current_user,
    get_optional_current_user,
    require_permission,
    require_any_permission,
    require_all_permissions,
    require_roles,
    get_staff_record,
    is_admin,
    is_manager,
    is_staff,
)
from eservice.modules.auth.rbac import (
    check_permission,
    check_any_permission,
    check_all_permissions,
)

__all__ = [
    "get_current_user",
    "get_optional_current_user",
    "require_permission",
    "require_any_permission",
    "require_all_permissions",
    "require_roles",
    "get_staff_record",
    "is_admin",
    "is_manager",
    "is_staff",
    "check_permission",
    "check_any_permission",
    "check_all_permissions",
]
