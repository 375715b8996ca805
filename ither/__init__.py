"""ither - data layer of a tech community app.

This package provides mentorship matching, a book club, a discussion forum,
a secondhand marketplace and user profiles on top of record stores that run
either on seed data plus a local mirror (mock mode) or on a SQLite-backed
document database (remote mode). Denormalized counters cached on parent
records are kept consistent with their child records in both backends.

Example:
    >>> from ither import CommunityApp, ForumPostInput, Settings
    >>> import asyncio
    >>>
    >>> async def main():
    ...     async with CommunityApp(Settings(mock_mode=True)) as community:
    ...         await community.sign_in("mock-1")
    ...         post_id = await community.forum.create_post(ForumPostInput(title="Hello"))
    ...         await community.forum.toggle_post_like(post_id)
    >>>
    >>> asyncio.run(main())
"""

from ither.app import CommunityApp
from ither.config import Settings, settings
from ither.database import DocumentDatabase
from ither.models import (
    Book,
    BookInput,
    BookReview,
    BookReviewInput,
    BookTopic,
    BookTopicInput,
    ForumComment,
    ForumCommentInput,
    ForumPost,
    ForumPostInput,
    MarketplaceComment,
    MarketplaceCommentInput,
    MarketplaceItem,
    MarketplaceItemInput,
    MentorPost,
    MentorPostInput,
    Mentorship,
    MentorshipRequest,
    UserProfile,
    UserProfileInput,
)
from ither.repository import RepositoryFactory, StoreRegistry
from ither.seed import make_seed

__version__ = "0.1.0"

__all__ = [
    # Main components
    "CommunityApp",
    "RepositoryFactory",
    "StoreRegistry",
    "DocumentDatabase",
    "make_seed",
    # Configuration
    "Settings",
    "settings",
    # Records
    "MentorPost",
    "Mentorship",
    "UserProfile",
    "Book",
    "BookReview",
    "BookTopic",
    "ForumPost",
    "ForumComment",
    "MarketplaceItem",
    "MarketplaceComment",
    # Action inputs
    "MentorPostInput",
    "MentorshipRequest",
    "UserProfileInput",
    "BookInput",
    "BookReviewInput",
    "BookTopicInput",
    "ForumPostInput",
    "ForumCommentInput",
    "MarketplaceItemInput",
    "MarketplaceCommentInput",
]
