"""Identity collaborator boundary.

Sign-in and session handling live outside the engine. All the engine needs is
a stable opaque user id to namespace the per-user historical cache.
"""

from abc import ABC, abstractmethod


class IdentityProvider(ABC):
    """Source of the current user's id."""

    @abstractmethod
    def current_user_id(self) -> str | None:
        """Return the signed-in user's id, or None when signed out."""
        ...


class StaticIdentityProvider(IdentityProvider):
    """Identity fixed at startup (from IDENTITY_USER_ID), switchable at runtime."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id or None

    def current_user_id(self) -> str | None:
        return self._user_id

    def sign_in(self, user_id: str) -> None:
        self._user_id = user_id

    def sign_out(self) -> None:
        self._user_id = None
