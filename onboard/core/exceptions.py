"""Onboarding engine exceptions.

Only programmer errors (empty user id, corrupt cache) reach callers.
RemoteUnavailableError is converted to a deferred SyncResult by the
sync coordinator.
"""


class OnboardingError(Exception):
    """Base class for onboarding engine errors."""


class InvalidUserIdError(OnboardingError, ValueError):
    def __init__(self, user_id: object = None):
        super().__init__(f"user_id must be a non-empty string, got {user_id!r}")


class CorruptCacheError(OnboardingError, ValueError):
    """A cached record exists but cannot be parsed."""

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(f"Cached value for '{key}' is malformed: {reason}")


class RemoteUnavailableError(OnboardingError):
    """The remote backend could not be reached or rejected the request."""

    def __init__(self, reason: str, status_code: int | None = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(reason)


def require_user_id(user_id: str) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidUserIdError(user_id)
    return user_id
