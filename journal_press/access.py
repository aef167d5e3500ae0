"""Permission checks against the current-user capability."""
from typing import Optional

from .errors import LoginRequiredError, PermissionDeniedError
from .models import CurrentUser


def require_user(user: Optional[CurrentUser]) -> CurrentUser:
    if user is None or not user.id:
        raise LoginRequiredError("You need to be logged in.")
    return user


def require_admin(user: Optional[CurrentUser]) -> CurrentUser:
    require_user(user)
    if not user.is_admin:
        raise PermissionDeniedError("You don't have permission.")
    return user
