"""Tests for user profiles, goals, activities and stats."""

import pytest

from ither.models import (
    ActivityType,
    ListingStatus,
    MentorshipRequest,
    UserGoalInput,
    UserProfileInput,
    UserSocialLinks,
)


class TestProfileDocuments:
    @pytest.mark.asyncio
    async def test_sign_in_publishes_profile(self, community):
        profile = await community.sign_in("mock-1")

        assert profile.nickname == "Sophia"
        assert community.session.has_profile
        assert community.session.display_name == "Sophia"
        assert community.session.role == "Frontend Dev"

        community.sign_out()
        assert community.session.profile is None
        assert not community.session.has_profile
        assert community.profile.user_profile is None

    @pytest.mark.asyncio
    async def test_save_new_profile(self, community):
        assert await community.sign_in("user-new") is None

        assert await community.profile.save_user_profile(UserProfileInput(nickname="Newbie", role="Student"))
        created = community.profile.user_profile.createdAt

        assert await community.profile.save_user_profile(
            UserProfileInput(nickname="Newbie", role="Junior Dev", skills=["Python"])
        )

        profile = community.profile.user_profile
        assert profile.role == "Junior Dev"
        assert profile.skills == ["Python"]
        assert profile.userId == "user-new"
        assert profile.createdAt == created
        assert community.session.role == "Junior Dev"

    @pytest.mark.asyncio
    async def test_save_keeps_nested_mentor_profile(self, community):
        await community.sign_in("mock-1")
        await community.stores.mentor_profiles.upsert("mock-1", {"bio": "Tech lead"})

        assert await community.profile.save_user_profile(UserProfileInput(nickname="Sophia W.", role="Frontend Dev"))

        assert (await community.stores.mentor_profiles.get("mock-1")).bio == "Tech lead"

    @pytest.mark.asyncio
    async def test_load_other_user_profile(self, community):
        other = await community.profile.load_other_user_profile("mock-4")

        assert other.nickname == "Emily"
        assert community.profile.user_profile is None

    @pytest.mark.asyncio
    async def test_without_identity(self, community):
        assert await community.profile.load_user_profile() is None
        assert await community.profile.save_user_profile(UserProfileInput(nickname="x", role="y")) is False


class TestPartialUpdates:
    @pytest.mark.asyncio
    async def test_update_status(self, community):
        await community.sign_in("mock-1")

        assert await community.profile.update_status("Looking for a mentor")

        assert community.profile.user_profile.currentStatus == "Looking for a mentor"
        assert community.profile.user_profile.updatedAt is not None

    @pytest.mark.asyncio
    async def test_update_needs_loaded_profile(self, signed_in):
        # signed_in sets the session directly, nothing loaded in the module
        assert await signed_in.profile.update_status("hi") is False

    @pytest.mark.asyncio
    async def test_update_social_links(self, community):
        await community.sign_in("mock-1")

        assert await community.profile.update_social_links(UserSocialLinks(github="https://github.com/sophia"))

        assert community.profile.user_profile.socialLinks.github == "https://github.com/sophia"


class TestGoals:
    @pytest.mark.asyncio
    async def test_goal_lifecycle(self, community):
        await community.sign_in("mock-1")
        module = community.profile

        first = await module.add_goal(UserGoalInput(text="Ship a side project"))
        second = await module.add_goal(UserGoalInput(text="Read 12 books"))

        assert first.startswith("goal-")
        assert [g.text for g in module.user_profile.currentGoals] == ["Ship a side project", "Read 12 books"]

        assert await module.toggle_goal(first)
        assert module.user_profile.currentGoals[0].isCompleted is True

        assert await module.delete_goal(second)
        assert [g.id for g in module.user_profile.currentGoals] == [first]

        assert await module.toggle_goal("goal-missing") is False
        assert await module.delete_goal("goal-missing") is False


class TestDerivedViews:
    @pytest.mark.asyncio
    async def test_activities(self, community):
        await community.sign_in("mock-1")

        activities = await community.profile.load_user_activities()

        assert [(a.type, a.targetId) for a in activities] == [
            (ActivityType.FORUM_POST, "post-1"),
            (ActivityType.MARKETPLACE_LISTING, "item-1"),
            (ActivityType.BOOK_REVIEW, "book-2"),
            (ActivityType.MARKETPLACE_LISTING, "item-5"),
        ]
        assert activities[2].targetTitle == "原子習慣"

    @pytest.mark.asyncio
    async def test_activities_of_other_user(self, community):
        activities = await community.profile.load_user_activities("mock-4")

        assert {a.type for a in activities} == {ActivityType.FORUM_POST, ActivityType.MARKETPLACE_LISTING}
        assert await community.profile.load_user_activities() == []

    @pytest.mark.asyncio
    async def test_stats(self, community):
        stats = await community.profile.load_user_stats("mock-2")

        assert stats.forumPosts == 1
        assert stats.forumComments == 2
        assert stats.booksReviewed == 1
        assert stats.marketplaceListings == 1
        assert stats.marketplaceSold == 0
        assert stats.mentorshipActive == 0

    @pytest.mark.asyncio
    async def test_stats_follow_activity(self, community, login):
        login("mock-1", "Sophia", "Frontend Dev")
        mentorship_id = await community.mentorship.request_mentorship(
            MentorshipRequest(targetUserId="mock-2"), as_mentor=True
        )
        await community.marketplace.update_item_status("item-1", ListingStatus.RESERVED)
        await community.marketplace.update_item_status("item-1", ListingStatus.SOLD)

        login("mock-2", "科技小白", "Fullstack")
        await community.mentorship.accept_mentorship(mentorship_id)

        login("mock-1", "Sophia", "Frontend Dev")
        stats = await community.profile.load_user_stats()

        assert stats.mentorshipActive == 1
        assert stats.marketplaceSold == 1
        assert stats.marketplaceListings == 2
