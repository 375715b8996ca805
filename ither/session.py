"""Caller identity and the shared plumbing of the feature modules.

Authentication is external: the host application sets ``user_id`` once the
user is signed in. ``ProfileModule`` publishes the loaded profile here so the
other modules can denormalize the author's nickname and role.

Every feature action follows the same shape::

    validate identity -> build record -> store / counter call -> refresh state

A missing identity is reported with a warning and a failure value; it never
raises.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Optional

from ither.logging import logger, set_request_context
from ither.models import Record, UserProfile
from ither.repository import StoreRegistry


@dataclass
class UserSession:
    user_id: Optional[str] = None
    profile: Optional[UserProfile] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def has_profile(self) -> bool:
        return self.is_authenticated and self.profile is not None

    @property
    def display_name(self) -> str:
        return self.profile.nickname if self.profile else ""

    @property
    def role(self) -> str:
        return self.profile.role if self.profile else ""

    def sign_in(self, user_id: str, profile: Optional[UserProfile] = None) -> None:
        self.user_id = user_id
        self.profile = profile

    def sign_out(self) -> None:
        self.user_id = None
        self.profile = None


class FeatureModule:
    """Base class of the five feature facades.

    Args:
        stores: Record stores of the active backend
        session: Shared caller identity
    """

    name = "feature"

    def __init__(self, stores: StoreRegistry, session: UserSession):
        self.stores = stores
        self.session = session
        self.is_loading = False

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id

    @contextmanager
    def _loading(self) -> Iterator[None]:
        self.is_loading = True
        try:
            yield
        finally:
            self.is_loading = False

    def _identity(self, action: str, require_profile: bool = False) -> bool:
        """Check the caller may run ``action`` and tag the log context.

        Args:
            action: Action name, logged as ``{module}.{action}``
            require_profile: Also require a loaded profile (author fields)

        Returns:
            True when the action may proceed
        """
        operation = f"{self.name}.{action}"
        set_request_context(user_id=self.user_id, operation=operation)
        if not self.session.is_authenticated:
            logger.warning(f"⚠️  {operation} skipped: no signed-in user")
            return False
        if require_profile and self.session.profile is None:
            logger.warning(f"⚠️  {operation} skipped: user {self.user_id} has no profile")
            return False
        logger.debug(f"{operation} by {self.user_id}")
        return True

    def _author_fields(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "userName": self.session.display_name,
            "userRole": self.session.role,
        }

    @staticmethod
    def _replace(records: list[Any], updated: Optional[Record]) -> None:
        """Swap the cached copy of ``updated`` in place (matched by id)."""
        if updated is None:
            return
        for index, record in enumerate(records):
            if record.id == updated.id:
                records[index] = updated
                return


__all__ = ["UserSession", "FeatureModule"]
