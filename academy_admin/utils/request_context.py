"""Request context management using contextvars.

The auth middleware stores the caller's e-mail and role here for the
duration of a request; services read them back without threading the values
through every call.
"""

import contextvars

from academy_admin.exceptions import UnauthorizedException

_current_user_email: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "current_user_email", default=None
)
_current_user_role: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "current_user_role", default=None
)
_current_user_name: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "current_user_name", default=None
)


def get_current_user_email() -> str:
    """Get the current user's e-mail.

    Raises:
        UnauthorizedException: If no user is authenticated
    """
    email = _current_user_email.get()
    if email is None:
        raise UnauthorizedException("User context is not set")
    return email


def get_current_user_email_or_none() -> str | None:
    return _current_user_email.get()


def set_current_user_email(email: str | None) -> None:
    _current_user_email.set(email)


def get_current_user_role() -> str | None:
    return _current_user_role.get()


def set_current_user_role(role: str | None) -> None:
    _current_user_role.set(role)


def get_current_user_name() -> str | None:
    return _current_user_name.get()


def set_current_user_name(name: str | None) -> None:
    _current_user_name.set(name)


def clear_all_context() -> None:
    """Clear all context variables.

    Call this at the end of each request to prevent context leakage.
    """
    _current_user_email.set(None)
    _current_user_role.set(None)
    _current_user_name.set(None)
