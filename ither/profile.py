"""User profiles, personal goals and derived activity/stats views.

There is one profile document per user, keyed by the user id. Every write is
a merge-style partial update so the nested mentor/mentee profiles kept in
the same document are never overwritten.

Activities and stats are not stored: they are computed on demand from the
forum, mentorship, booklist and marketplace collections, the same way in
both backends.
"""

import uuid
from typing import Any, Optional

from ither.logging import logger
from ither.models import (
    ActivityType,
    ListingStatus,
    MentorPostStatus,
    MentorPostType,
    MentorshipStatus,
    PostStatus,
    UserActivity,
    UserGoal,
    UserGoalInput,
    UserProfile,
    UserProfileInput,
    UserSocialLinks,
    UserStats,
)
from ither.query import dedupe_by_id, sort_by_recency
from ither.repository import StoreRegistry
from ither.session import FeatureModule, UserSession
from ither.types import SERVER_TIMESTAMP
from ither.utils import truncate, utc_now

ACTIVITY_LIMIT = 20
"""Most recent activities returned by ``load_user_activities``."""

PREVIEW_LENGTH = 100


def new_goal_id() -> str:
    return f"goal-{uuid.uuid4().hex[:12]}"


class ProfileModule(FeatureModule):
    """Profile facade.

    Loading or saving the caller's own profile publishes it on the shared
    ``UserSession`` so authored records carry the current nickname and role.
    """

    name = "profile"

    def __init__(self, stores: StoreRegistry, session: UserSession):
        super().__init__(stores, session)
        self.user_profile: Optional[UserProfile] = None
        self.user_activities: list[UserActivity] = []
        self.user_stats: Optional[UserStats] = None

    def _publish(self, profile: Optional[UserProfile]) -> None:
        self.user_profile = profile
        self.session.profile = profile

    # =========================================================================
    # Profile documents
    # =========================================================================

    async def load_user_profile(self) -> Optional[UserProfile]:
        if not self._identity("load_user_profile"):
            return None

        with self._loading():
            profile = await self.stores.user_profiles.get(self.user_id)
        self._publish(profile)
        return profile

    async def save_user_profile(self, data: UserProfileInput) -> bool:
        """Create or update the caller's profile, keeping its ``createdAt``."""
        if not self._identity("save_user_profile"):
            return False

        store = self.stores.user_profiles
        existing = await store.get(self.user_id)
        fields: dict[str, Any] = {
            **data.model_dump(),
            "userId": self.user_id,
            "createdAt": existing.createdAt if existing and existing.createdAt else SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        }
        if not await store.upsert(self.user_id, fields):
            return False

        logger.info(f"✅ Profile saved for {self.user_id} ({data.nickname})")
        await self.load_user_profile()
        return True

    async def load_other_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return await self.stores.user_profiles.get(user_id)

    async def _update_profile(self, action: str, fields: dict[str, Any]) -> bool:
        # Partial updates need an existing, loaded profile
        if not self._identity(action):
            return False
        if self.user_profile is None:
            logger.warning(f"⚠️  {self.name}.{action} needs a loaded profile")
            return False

        if not await self.stores.user_profiles.update(self.user_id, {**fields, "updatedAt": SERVER_TIMESTAMP}):
            return False
        await self.load_user_profile()
        return True

    async def update_status(self, text: str) -> bool:
        return await self._update_profile("update_status", {"currentStatus": text})

    async def update_social_links(self, links: UserSocialLinks) -> bool:
        return await self._update_profile("update_social_links", {"socialLinks": links.model_dump()})

    # =========================================================================
    # Goals
    # =========================================================================

    def _goals(self) -> list[UserGoal]:
        return list(self.user_profile.currentGoals) if self.user_profile else []

    async def add_goal(self, data: UserGoalInput) -> Optional[str]:
        """Append a goal; returns its id."""
        goal = UserGoal(id=new_goal_id(), createdAt=utc_now(), **data.model_dump())
        goals = [*self._goals(), goal]
        if not await self._update_profile("add_goal", {"currentGoals": [g.model_dump() for g in goals]}):
            return None
        return goal.id

    async def toggle_goal(self, goal_id: str) -> bool:
        goals = self._goals()
        if not any(g.id == goal_id for g in goals):
            logger.warning(f"⚠️  Goal {goal_id} not found")
            return False
        updated = [
            g.model_copy(update={"isCompleted": not g.isCompleted}) if g.id == goal_id else g for g in goals
        ]
        return await self._update_profile("toggle_goal", {"currentGoals": [g.model_dump() for g in updated]})

    async def delete_goal(self, goal_id: str) -> bool:
        goals = self._goals()
        remaining = [g for g in goals if g.id != goal_id]
        if len(remaining) == len(goals):
            logger.warning(f"⚠️  Goal {goal_id} not found")
            return False
        return await self._update_profile("delete_goal", {"currentGoals": [g.model_dump() for g in remaining]})

    # =========================================================================
    # Derived views
    # =========================================================================

    async def load_user_activities(self, user_id: Optional[str] = None) -> list[UserActivity]:
        """Recent posts, mentor posts, reviews and listings of a user, newest first."""
        uid = user_id or self.user_id
        if not uid:
            return []

        with self._loading():
            posts = await self.stores.forum_posts.list({"userId": uid, "status": PostStatus.ACTIVE})
            mentor_posts = await self.stores.mentor_posts.list(
                {"userId": uid, "status": MentorPostStatus.ACTIVE}
            )
            reviews = await self.stores.book_reviews.list({"userId": uid})
            items = await self.stores.marketplace_items.list({"userId": uid})
            books = {book.id: book for book in await self.stores.books.list()}

        activities = [
            UserActivity(
                id=f"{ActivityType.FORUM_POST}-{post.id}",
                userId=uid,
                type=ActivityType.FORUM_POST,
                targetId=post.id,
                targetTitle=post.title,
                preview=truncate(post.content, PREVIEW_LENGTH),
                createdAt=post.createdAt,
            )
            for post in posts
        ]
        for post in mentor_posts:
            kind = (
                ActivityType.MENTORSHIP_OFFER
                if post.type == MentorPostType.OFFER
                else ActivityType.MENTORSHIP_REQUEST
            )
            activities.append(
                UserActivity(
                    id=f"{kind}-{post.id}",
                    userId=uid,
                    type=kind,
                    targetId=post.id,
                    targetTitle=post.title,
                    preview=truncate(post.description, PREVIEW_LENGTH),
                    createdAt=post.createdAt,
                )
            )
        for review in reviews:
            book = books.get(review.bookId)
            activities.append(
                UserActivity(
                    id=f"{ActivityType.BOOK_REVIEW}-{review.id}",
                    userId=uid,
                    type=ActivityType.BOOK_REVIEW,
                    targetId=review.bookId,
                    targetTitle=book.title if book else "",
                    preview=truncate(review.content, PREVIEW_LENGTH),
                    createdAt=review.createdAt,
                )
            )
        for item in items:
            activities.append(
                UserActivity(
                    id=f"{ActivityType.MARKETPLACE_LISTING}-{item.id}",
                    userId=uid,
                    type=ActivityType.MARKETPLACE_LISTING,
                    targetId=item.id,
                    targetTitle=item.title,
                    preview=truncate(item.description, PREVIEW_LENGTH),
                    createdAt=item.createdAt,
                )
            )

        self.user_activities = sort_by_recency(activities)[:ACTIVITY_LIMIT]
        return self.user_activities

    async def load_user_stats(self, user_id: Optional[str] = None) -> Optional[UserStats]:
        uid = user_id or self.user_id
        if not uid:
            return None

        with self._loading():
            posts = await self.stores.forum_posts.list({"userId": uid, "status": PostStatus.ACTIVE})
            comments = await self.stores.forum_comments.list({"userId": uid})
            as_mentor = await self.stores.mentorships.list({"mentorId": uid, "status": MentorshipStatus.ACTIVE})
            as_mentee = await self.stores.mentorships.list({"menteeId": uid, "status": MentorshipStatus.ACTIVE})
            reviews = await self.stores.book_reviews.list({"userId": uid})
            items = await self.stores.marketplace_items.list({"userId": uid})

        self.user_stats = UserStats(
            forumPosts=len(posts),
            forumComments=len(comments),
            mentorshipActive=len(dedupe_by_id(as_mentor + as_mentee)),
            booksReviewed=len({review.bookId for review in reviews}),
            marketplaceListings=len(items),
            marketplaceSold=sum(1 for item in items if item.status == ListingStatus.SOLD),
        )
        return self.user_stats


__all__ = ["ProfileModule", "ACTIVITY_LIMIT", "new_goal_id"]
