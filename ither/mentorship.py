"""Mentorship matching: mentor posts, mentorship requests and profiles.

A mentorship is a two-party record moving through ``MentorshipStatus``:

- the initiator acting as mentor creates it in ``pending_mentee``,
  acting as mentee in ``pending_mentor``
- only the awaited party may accept (``active``)
- either party may reject a pending request or complete an active one
- ``completed`` and ``rejected`` are terminal

Mentor and mentee profiles are stored nested inside the user's profile
document remotely and as standalone local mirrors in mock mode.

Example:
    >>> module = MentorshipModule(stores, session)
    >>> request_id = await module.request_mentorship(
    ...     MentorshipRequest(targetUserId="mock-2", areas=["Vue.js"]), as_mentor=True
    ... )
    >>> module.my_mentorships[0].status
    <MentorshipStatus.PENDING_MENTEE: 'pending_mentee'>
"""

from typing import Any, Optional

from ither.logging import logger
from ither.models import (
    MenteeProfile,
    MenteeProfileInput,
    MentorPost,
    MentorPostInput,
    MentorPostStatus,
    MentorPostType,
    MentorProfile,
    MentorProfileInput,
    Mentorship,
    MentorshipRequest,
    MentorshipStatus,
)
from ither.query import dedupe_by_id, sort_by_recency
from ither.repository import StoreRegistry
from ither.session import FeatureModule, UserSession
from ither.types import SERVER_TIMESTAMP


class MentorshipModule(FeatureModule):
    """Mentor posts, the caller's mentorships and mentor/mentee profiles.

    Attributes:
        mentor_posts: Active posts of the last load, newest first
        my_mentorships: Mentorships involving the caller, newest first
        my_mentor_profile: Caller's mentor profile, if any
        my_mentee_profile: Caller's mentee profile, if any
    """

    name = "mentorship"

    def __init__(self, stores: StoreRegistry, session: UserSession):
        super().__init__(stores, session)
        self.mentor_posts: list[MentorPost] = []
        self.my_mentorships: list[Mentorship] = []
        self.my_mentor_profile: Optional[MentorProfile] = None
        self.my_mentee_profile: Optional[MenteeProfile] = None

    # =========================================================================
    # Derived state
    # =========================================================================

    @property
    def pending_requests(self) -> list[Mentorship]:
        """Requests waiting for the caller's answer."""
        return [m for m in self.my_mentorships if self.user_id and m.awaiting_user_id == self.user_id]

    @property
    def active_mentorships(self) -> list[Mentorship]:
        return [m for m in self.my_mentorships if m.status == MentorshipStatus.ACTIVE]

    @property
    def my_posts(self) -> list[MentorPost]:
        return [p for p in self.mentor_posts if self.user_id and p.userId == self.user_id]

    # =========================================================================
    # Mentor posts
    # =========================================================================

    async def load_mentor_posts(self, post_type: Optional[MentorPostType] = None) -> list[MentorPost]:
        """Load active mentor posts, optionally only offers or requests."""
        filters: dict[str, Any] = {"status": MentorPostStatus.ACTIVE}
        if post_type is not None:
            filters["type"] = post_type
        with self._loading():
            posts = await self.stores.mentor_posts.list(filters)
        self.mentor_posts = sort_by_recency(posts)
        return self.mentor_posts

    async def create_post(self, data: MentorPostInput) -> Optional[str]:
        if not self._identity("create_post", require_profile=True):
            return None

        post = MentorPost(**self._author_fields(), **data.model_dump())
        post_id = await self.stores.mentor_posts.create(post)
        if post_id is None:
            return None

        logger.info(f"✅ Mentor post {post_id} created ({data.type})")
        await self.load_mentor_posts()
        return post_id

    async def delete_post(self, post_id: str) -> bool:
        """Hard delete one of the caller's own mentor posts."""
        if not self._identity("delete_post"):
            return False

        post = await self.stores.mentor_posts.get(post_id)
        if post is None or post.userId != self.user_id:
            logger.warning(f"⚠️  Mentor post {post_id} not found or not owned by {self.user_id}")
            return False

        if not await self.stores.mentor_posts.remove(post_id):
            return False
        self.mentor_posts = [p for p in self.mentor_posts if p.id != post_id]
        return True

    # =========================================================================
    # Mentorships
    # =========================================================================

    async def load_my_mentorships(self) -> list[Mentorship]:
        """Load mentorships where the caller is mentor or mentee."""
        if not self._identity("load_my_mentorships"):
            return []

        with self._loading():
            as_mentor = await self.stores.mentorships.list({"mentorId": self.user_id})
            as_mentee = await self.stores.mentorships.list({"menteeId": self.user_id})
        self.my_mentorships = sort_by_recency(dedupe_by_id(as_mentor + as_mentee))
        return self.my_mentorships

    async def request_mentorship(self, request: MentorshipRequest, as_mentor: bool) -> Optional[str]:
        """Open a mentorship with another user.

        Args:
            request: Target user, areas and message
            as_mentor: True when the caller offers to mentor the target

        Returns:
            The new mentorship id, or None
        """
        if not self._identity("request_mentorship", require_profile=True):
            return None
        if request.targetUserId == self.user_id:
            logger.warning(f"⚠️  {self.user_id} cannot request a mentorship with themselves")
            return None

        target = await self.stores.user_profiles.get(request.targetUserId)
        target_name = target.nickname if target else None
        if as_mentor:
            parties = {
                "mentorId": self.user_id,
                "menteeId": request.targetUserId,
                "mentorName": self.session.display_name,
                "menteeName": target_name,
                "status": MentorshipStatus.PENDING_MENTEE,
            }
        else:
            parties = {
                "mentorId": request.targetUserId,
                "menteeId": self.user_id,
                "mentorName": target_name,
                "menteeName": self.session.display_name,
                "status": MentorshipStatus.PENDING_MENTOR,
            }

        mentorship = Mentorship(
            **parties,
            initiatedBy=self.user_id,
            areas=request.areas,
            message=request.message,
        )
        mentorship_id = await self.stores.mentorships.create(mentorship)
        if mentorship_id is None:
            return None

        logger.info(f"✅ Mentorship {mentorship_id} requested ({mentorship.status})")
        await self.load_my_mentorships()
        return mentorship_id

    async def _transition(
        self,
        action: str,
        mentorship_id: str,
        target: MentorshipStatus,
        fields: dict[str, Any],
        awaited_only: bool = False,
    ) -> bool:
        if not self._identity(action):
            return False

        mentorship = await self.stores.mentorships.get(mentorship_id)
        if mentorship is None or not mentorship.involves(self.user_id):
            logger.warning(f"⚠️  Mentorship {mentorship_id} not found for {self.user_id}")
            return False
        if awaited_only and mentorship.awaiting_user_id != self.user_id:
            logger.warning(f"⚠️  Mentorship {mentorship_id} is not waiting for {self.user_id}")
            return False
        if not mentorship.can_transition(target):
            logger.warning(f"⚠️  Mentorship {mentorship_id}: {mentorship.status} -> {target} not allowed")
            return False

        if not await self.stores.mentorships.update(mentorship_id, {"status": target, **fields}):
            return False

        logger.info(f"✅ Mentorship {mentorship_id}: {mentorship.status} -> {target}")
        await self.load_my_mentorships()
        return True

    async def accept_mentorship(self, mentorship_id: str) -> bool:
        """Accept a pending request addressed to the caller."""
        return await self._transition(
            "accept_mentorship",
            mentorship_id,
            MentorshipStatus.ACTIVE,
            {"acceptedAt": SERVER_TIMESTAMP},
            awaited_only=True,
        )

    async def reject_mentorship(self, mentorship_id: str, reason: Optional[str] = None) -> bool:
        return await self._transition(
            "reject_mentorship",
            mentorship_id,
            MentorshipStatus.REJECTED,
            {"rejectionReason": reason or ""},
        )

    async def complete_mentorship(self, mentorship_id: str) -> bool:
        return await self._transition(
            "complete_mentorship",
            mentorship_id,
            MentorshipStatus.COMPLETED,
            {"completedAt": SERVER_TIMESTAMP},
        )

    # =========================================================================
    # Mentor / mentee profiles
    # =========================================================================

    async def load_my_profiles(self) -> tuple[Optional[MentorProfile], Optional[MenteeProfile]]:
        if not self._identity("load_my_profiles"):
            return None, None

        with self._loading():
            self.my_mentor_profile = await self.stores.mentor_profiles.get(self.user_id)
            self.my_mentee_profile = await self.stores.mentee_profiles.get(self.user_id)
        return self.my_mentor_profile, self.my_mentee_profile

    @staticmethod
    def _profile_fields(data: Any, existing: Any) -> dict[str, Any]:
        # createdAt survives later saves; updatedAt always moves
        return {
            **data.model_dump(),
            "createdAt": existing.createdAt if existing and existing.createdAt else SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        }

    async def update_mentor_profile(self, data: MentorProfileInput) -> bool:
        if not self._identity("update_mentor_profile"):
            return False

        store = self.stores.mentor_profiles
        existing = await store.get(self.user_id)
        if not await store.upsert(self.user_id, self._profile_fields(data, existing)):
            return False
        self.my_mentor_profile = await store.get(self.user_id)
        return True

    async def update_mentee_profile(self, data: MenteeProfileInput) -> bool:
        if not self._identity("update_mentee_profile"):
            return False

        store = self.stores.mentee_profiles
        existing = await store.get(self.user_id)
        if not await store.upsert(self.user_id, self._profile_fields(data, existing)):
            return False
        self.my_mentee_profile = await store.get(self.user_id)
        return True


__all__ = ["MentorshipModule"]
