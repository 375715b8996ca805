"""Data models for ither.

This module defines both Pydantic models (records and action inputs) and the
SQLModel table backing the document database.

Models are organized into five sections:
1. Enums and state machines
2. Base record and shared value objects
3. Feature records and inputs (mentorship, profile, booklist, forum, marketplace)
4. Derived profile views
5. SQLModel tables for document persistence
"""

from datetime import datetime
from enum import StrEnum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator
from sqlalchemy import JSON, Column
from sqlmodel import Field as SQLField
from sqlmodel import SQLModel

from ither.utils import parse_datetime

# =============================================================================
# Section 1: Enums and State Machines
# =============================================================================


class MentorPostType(StrEnum):
    """Whether a mentor post offers guidance or asks for it."""

    OFFER = "offer"
    REQUEST = "request"


class MentorPostStatus(StrEnum):
    ACTIVE = "active"
    REMOVED = "removed"


class MentorshipStatus(StrEnum):
    """Lifecycle of a mentor/mentee pairing."""

    PENDING_MENTOR = "pending_mentor"
    PENDING_MENTEE = "pending_mentee"
    ACTIVE = "active"
    COMPLETED = "completed"
    REJECTED = "rejected"


MENTORSHIP_TRANSITIONS: dict[MentorshipStatus, frozenset[MentorshipStatus]] = {
    MentorshipStatus.PENDING_MENTOR: frozenset(
        {MentorshipStatus.ACTIVE, MentorshipStatus.REJECTED}
    ),
    MentorshipStatus.PENDING_MENTEE: frozenset(
        {MentorshipStatus.ACTIVE, MentorshipStatus.REJECTED}
    ),
    MentorshipStatus.ACTIVE: frozenset({MentorshipStatus.COMPLETED}),
    MentorshipStatus.COMPLETED: frozenset(),
    MentorshipStatus.REJECTED: frozenset(),
}
"""Legal mentorship status transitions; terminal states map to an empty set."""


class ForumCategory(StrEnum):
    TECH = "tech"
    CAREER = "career"
    LIFE = "life"
    LEARNING = "learning"
    OTHER = "other"


class PostStatus(StrEnum):
    """Visibility of forum posts and book topics."""

    ACTIVE = "active"
    REMOVED = "removed"


class BookCategory(StrEnum):
    TECH = "tech"
    SELF_GROWTH = "self-growth"
    CAREER = "career"
    BUSINESS = "business"
    OTHER = "other"


class ReadingStatus(StrEnum):
    WANT_TO_READ = "want-to-read"
    READING = "reading"
    FINISHED = "finished"


READING_STATUS_COUNTERS: dict[ReadingStatus, str] = {
    ReadingStatus.WANT_TO_READ: "wantToReadCount",
    ReadingStatus.READING: "readingCount",
    ReadingStatus.FINISHED: "finishedCount",
}
"""Book counter field maintained for each reading status."""


class SharePlatform(StrEnum):
    COPY_LINK = "copy-link"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINE = "line"


class MarketplaceCategory(StrEnum):
    ELECTRONICS = "electronics"
    FURNITURE = "furniture"
    BOOKS = "books"
    SPORTS = "sports"
    CLOTHING = "clothing"
    OTHER = "other"


class ItemCondition(StrEnum):
    NEW = "new"
    LIKE_NEW = "like-new"
    GOOD = "good"
    FAIR = "fair"


class ListingStatus(StrEnum):
    """Lifecycle of a marketplace listing."""

    ACTIVE = "active"
    RESERVED = "reserved"
    SOLD = "sold"
    CLOSED = "closed"


LISTING_TRANSITIONS: dict[ListingStatus, frozenset[ListingStatus]] = {
    ListingStatus.ACTIVE: frozenset({ListingStatus.RESERVED, ListingStatus.CLOSED}),
    ListingStatus.RESERVED: frozenset({ListingStatus.SOLD}),
    ListingStatus.SOLD: frozenset(),
    ListingStatus.CLOSED: frozenset(),
}
"""Owner-driven listing transitions; nothing moves automatically."""


class SocialPlatform(StrEnum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    THREADS = "threads"


class ActivityType(StrEnum):
    FORUM_POST = "forum_post"
    MENTORSHIP_OFFER = "mentorship_offer"
    MENTORSHIP_REQUEST = "mentorship_request"
    BOOK_REVIEW = "book_review"
    MARKETPLACE_LISTING = "marketplace_listing"


# =============================================================================
# Section 2: Base Record and Shared Value Objects
# =============================================================================


class Record(BaseModel):
    """Base class for every stored record.

    Attributes:
        id: Record identifier (``local-`` prefixed for mirror records)
        createdAt: Creation timestamp (UTC)
        updatedAt: Last modification timestamp (UTC)

    Subclasses set ``id_prefix`` which names locally generated ids
    (``local-{id_prefix}-{n}``).
    """

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id_prefix: ClassVar[str] = "record"

    id: str = ""
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @field_validator("createdAt", "updatedAt", mode="before")
    @classmethod
    def _coerce_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_datetime(v)

    def to_document(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible document without the id."""
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_document(cls, document_id: str, data: dict[str, Any]):
        """Build a record from a stored document and its id."""
        return cls.model_validate({**data, "id": document_id})


class AuthoredRecord(Record):
    """Record carrying denormalized author information."""

    userId: str
    userName: str = ""
    userRole: str = ""


class SocialEmbed(BaseModel):
    """A recognized social media post link.

    Attributes:
        platform: Source platform
        url: Cleaned URL suitable for embedding
        isShortUrl: True for Facebook share links that cannot be embedded
    """

    platform: SocialPlatform
    url: str
    isShortUrl: bool = False


# =============================================================================
# Section 3a: Mentorship
# =============================================================================


class MentorPost(AuthoredRecord):
    """A public offer to mentor or a request for a mentor."""

    id_prefix: ClassVar[str] = "mentor-post"

    type: MentorPostType
    title: str
    areas: list[str] = Field(default_factory=list)
    description: str = ""
    status: MentorPostStatus = MentorPostStatus.ACTIVE


class MentorPostInput(BaseModel):
    type: MentorPostType
    title: str = Field(min_length=1)
    areas: list[str] = Field(default_factory=list)
    description: str = ""


class Mentorship(Record):
    """Two-party mentorship pairing.

    Attributes:
        mentorId: User acting as mentor
        menteeId: User acting as mentee
        status: Current state (see ``MENTORSHIP_TRANSITIONS``)
        initiatedBy: User who sent the request
        rejectionReason: Free text supplied on rejection
    """

    id_prefix: ClassVar[str] = "mentorship"

    mentorId: str
    menteeId: str
    status: MentorshipStatus
    initiatedBy: str
    areas: list[str] = Field(default_factory=list)
    message: str = ""
    mentorName: Optional[str] = None
    menteeName: Optional[str] = None
    rejectionReason: Optional[str] = None
    acceptedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None

    @field_validator("acceptedAt", "completedAt", mode="before")
    @classmethod
    def _coerce_milestones(cls, v: Any) -> Optional[datetime]:
        return parse_datetime(v)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.mentorId, self.menteeId)

    @property
    def awaiting_user_id(self) -> Optional[str]:
        """The party whose answer the pending request waits for."""
        if self.status == MentorshipStatus.PENDING_MENTEE:
            return self.menteeId
        if self.status == MentorshipStatus.PENDING_MENTOR:
            return self.mentorId
        return None

    def can_transition(self, target: MentorshipStatus) -> bool:
        return target in MENTORSHIP_TRANSITIONS[self.status]


class MentorshipRequest(BaseModel):
    targetUserId: str = Field(min_length=1)
    areas: list[str] = Field(default_factory=list)
    message: str = ""


class MentorProfile(Record):
    """What a user can offer as a mentor (id is the user id)."""

    id_prefix: ClassVar[str] = "mentor-profile"

    expertise: list[str] = Field(default_factory=list)
    yearsOfExperience: NonNegativeInt = 0
    availability: str = ""
    maxMentees: NonNegativeInt = 1
    bio: str = ""
    isAccepting: bool = True


class MentorProfileInput(BaseModel):
    expertise: list[str] = Field(default_factory=list)
    yearsOfExperience: NonNegativeInt = 0
    availability: str = ""
    maxMentees: NonNegativeInt = 1
    bio: str = ""
    isAccepting: bool = True


class MenteeProfile(Record):
    """What a user wants to learn as a mentee (id is the user id)."""

    id_prefix: ClassVar[str] = "mentee-profile"

    interests: list[str] = Field(default_factory=list)
    goals: str = ""
    currentLevel: str = ""
    preferredFormat: str = ""


class MenteeProfileInput(BaseModel):
    interests: list[str] = Field(default_factory=list)
    goals: str = ""
    currentLevel: str = ""
    preferredFormat: str = ""


# =============================================================================
# Section 3b: Profile
# =============================================================================


class UserGoal(BaseModel):
    id: str
    text: str
    isCompleted: bool = False
    targetDate: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @field_validator("targetDate", "createdAt", mode="before")
    @classmethod
    def _coerce_dates(cls, v: Any) -> Optional[datetime]:
        return parse_datetime(v)


class UserGoalInput(BaseModel):
    text: str = Field(min_length=1)
    isCompleted: bool = False
    targetDate: Optional[datetime] = None


class UserSocialLinks(BaseModel):
    github: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None
    threads: Optional[str] = None
    facebook: Optional[str] = None


class UserProfile(Record):
    """One profile document per user (id is the user id).

    The mentor and mentee sub-profiles live nested in the same remote
    document and are written with merge-style partial updates.
    """

    id_prefix: ClassVar[str] = "profile"

    userId: str = ""
    nickname: str = ""
    role: str = ""
    title: str = ""
    bio: str = ""
    skills: list[str] = Field(default_factory=list)
    currentStatus: Optional[str] = None
    currentGoals: list[UserGoal] = Field(default_factory=list)
    socialLinks: Optional[UserSocialLinks] = None
    mentorProfile: Optional[MentorProfile] = None
    menteeProfile: Optional[MenteeProfile] = None


class UserProfileInput(BaseModel):
    nickname: str = Field(min_length=1)
    role: str = Field(min_length=1)
    title: str = ""
    bio: str = ""
    skills: list[str] = Field(default_factory=list)


# =============================================================================
# Section 3c: Booklist
# =============================================================================


class Book(AuthoredRecord):
    """A recommended book with denormalized reading and review counters."""

    id_prefix: ClassVar[str] = "book"

    title: str
    author: str = ""
    category: BookCategory = BookCategory.OTHER
    coverUrl: Optional[str] = None
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    avgRating: float = Field(default=0.0, ge=0, le=5)
    reviewCount: NonNegativeInt = 0
    wantToReadCount: NonNegativeInt = 0
    readingCount: NonNegativeInt = 0
    finishedCount: NonNegativeInt = 0
    shareCount: NonNegativeInt = 0


class BookInput(BaseModel):
    title: str = Field(min_length=1)
    author: str = ""
    category: BookCategory = BookCategory.OTHER
    coverUrl: Optional[str] = None
    description: str = ""
    tags: list[str] = Field(default_factory=list)


class BookReview(AuthoredRecord):
    id_prefix: ClassVar[str] = "review"

    bookId: str
    rating: int = Field(ge=1, le=5)
    content: str = ""
    readingStatus: Optional[ReadingStatus] = None
    likeCount: NonNegativeInt = 0
    likedBy: list[str] = Field(default_factory=list)


class BookReviewInput(BaseModel):
    bookId: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    content: str = ""
    readingStatus: Optional[ReadingStatus] = None


class BookShare(Record):
    id_prefix: ClassVar[str] = "share"

    bookId: str
    userId: str
    userName: str = ""
    platform: SharePlatform


class UserBookProgress(Record):
    """A user's reading status for one book."""

    id_prefix: ClassVar[str] = "progress"

    userId: str
    bookId: str
    status: ReadingStatus
    startedAt: Optional[datetime] = None
    finishedAt: Optional[datetime] = None

    @field_validator("startedAt", "finishedAt", mode="before")
    @classmethod
    def _coerce_progress_dates(cls, v: Any) -> Optional[datetime]:
        return parse_datetime(v)


class BookTopic(AuthoredRecord):
    """Book club discussion topic, optionally attached to a book."""

    id_prefix: ClassVar[str] = "topic"

    bookId: Optional[str] = None
    title: str
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.ACTIVE
    viewCount: NonNegativeInt = 0
    likeCount: NonNegativeInt = 0
    commentCount: NonNegativeInt = 0
    likedBy: list[str] = Field(default_factory=list)


class BookTopicInput(BaseModel):
    bookId: Optional[str] = None
    title: str = Field(min_length=1)
    content: str = ""
    tags: list[str] = Field(default_factory=list)


# =============================================================================
# Section 3d: Forum
# =============================================================================


class ForumPost(AuthoredRecord):
    id_prefix: ClassVar[str] = "post"

    category: ForumCategory = ForumCategory.OTHER
    title: str
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.ACTIVE
    viewCount: NonNegativeInt = 0
    likeCount: NonNegativeInt = 0
    commentCount: NonNegativeInt = 0
    likedBy: list[str] = Field(default_factory=list)
    embed: Optional[SocialEmbed] = None


class ForumPostInput(BaseModel):
    category: ForumCategory = ForumCategory.OTHER
    title: str = Field(min_length=1)
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    embedUrl: Optional[str] = None


class ForumComment(AuthoredRecord):
    id_prefix: ClassVar[str] = "comment"

    postId: str
    content: str
    likeCount: NonNegativeInt = 0
    likedBy: list[str] = Field(default_factory=list)
    parentId: Optional[str] = None


class ForumCommentInput(BaseModel):
    postId: str = Field(min_length=1)
    content: str = Field(min_length=1)
    parentId: Optional[str] = None


# =============================================================================
# Section 3e: Marketplace
# =============================================================================


class MarketplaceItem(AuthoredRecord):
    id_prefix: ClassVar[str] = "item"

    title: str
    description: str = ""
    category: MarketplaceCategory = MarketplaceCategory.OTHER
    condition: ItemCondition = ItemCondition.GOOD
    price: NonNegativeInt = 0
    originalPrice: Optional[NonNegativeInt] = None
    images: list[str] = Field(default_factory=list)
    tradeLocation: str = ""
    status: ListingStatus = ListingStatus.ACTIVE
    viewCount: NonNegativeInt = 0
    wishlistCount: NonNegativeInt = 0
    commentCount: NonNegativeInt = 0


class MarketplaceItemInput(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    category: MarketplaceCategory = MarketplaceCategory.OTHER
    condition: ItemCondition = ItemCondition.GOOD
    price: NonNegativeInt = 0
    originalPrice: Optional[NonNegativeInt] = None
    images: list[str] = Field(default_factory=list)
    tradeLocation: str = ""


class MarketplaceComment(AuthoredRecord):
    id_prefix: ClassVar[str] = "comment"

    itemId: str
    content: str
    isSellerReply: bool = False
    parentId: Optional[str] = None


class MarketplaceCommentInput(BaseModel):
    itemId: str = Field(min_length=1)
    content: str = Field(min_length=1)
    parentId: Optional[str] = None


class MarketplaceWishlist(Record):
    id_prefix: ClassVar[str] = "wishlist"

    userId: str
    itemId: str


# =============================================================================
# Section 4: Derived Profile Views
# =============================================================================


class UserActivity(BaseModel):
    """One entry of a user's recent activity feed."""

    id: str
    userId: str
    type: ActivityType
    targetId: str
    targetTitle: str
    preview: str = ""
    createdAt: Optional[datetime] = None


class UserStats(BaseModel):
    forumPosts: NonNegativeInt = 0
    forumComments: NonNegativeInt = 0
    mentorshipActive: NonNegativeInt = 0
    booksReviewed: NonNegativeInt = 0
    marketplaceListings: NonNegativeInt = 0
    marketplaceSold: NonNegativeInt = 0


# =============================================================================
# Section 5: SQLModel Tables for Document Persistence
# =============================================================================


class DocumentRow(SQLModel, table=True):
    """One document of the remote store.

    Attributes:
        collection: Full collection path (``artifacts/{app}/public/data/{name}``)
        id: Document id, unique within its collection
        data: Document body as JSON
        createdAt: ISO8601 UTC time the row was first written
        updatedAt: ISO8601 UTC time of the last write
    """

    __tablename__ = "documents"  # type: ignore[assignment]

    collection: str = SQLField(primary_key=True)
    id: str = SQLField(primary_key=True)
    data: dict[str, Any] = SQLField(default_factory=dict, sa_column=Column(JSON, nullable=False))
    createdAt: Optional[str] = SQLField(default=None, index=True)
    updatedAt: Optional[str] = None
