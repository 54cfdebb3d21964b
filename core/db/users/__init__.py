"""
User-related storage helpers, split by responsibility.
"""
from core.db.users.auth import hash_password, verify_password
from core.db.users.codes import expiry_timestamp, new_code, parse_expiry_minutes
from core.db.users.user_store import (
    ADMIN_ROLE,
    USER_ROLE,
    UserPatch,
    change_password,
    create_user,
    exists_by_email,
    get_user_by_email,
    get_user_by_id,
    list_users,
    set_last_logout,
    update_basic_fields,
)
from core.db.users.email_verification import (
    check_email_token,
    is_email_verified,
    mark_email_verified,
    regenerate_email_token,
)
from core.db.users.email_change import init_email_change, verify_email_change
from core.db.users.password_reset import (
    apply_password_reset,
    init_password_reset,
    verify_password_reset_code,
)
from core.db.users.availability import get_availability, replace_availability

__all__ = [
    "hash_password",
    "verify_password",
    "expiry_timestamp",
    "new_code",
    "parse_expiry_minutes",
    "ADMIN_ROLE",
    "USER_ROLE",
    "UserPatch",
    "change_password",
    "create_user",
    "exists_by_email",
    "get_user_by_email",
    "get_user_by_id",
    "list_users",
    "set_last_logout",
    "update_basic_fields",
    "check_email_token",
    "is_email_verified",
    "mark_email_verified",
    "regenerate_email_token",
    "init_email_change",
    "verify_email_change",
    "apply_password_reset",
    "init_password_reset",
    "verify_password_reset_code",
    "get_availability",
    "replace_availability",
]
