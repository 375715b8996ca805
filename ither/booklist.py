"""Book club: books, reviews, reading progress, shares and discussion topics.

Counter invariants kept by this module:

- ``Book.reviewCount``/``avgRating`` fold in every review (append-only)
- ``wantToReadCount + readingCount + finishedCount`` equals the number of
  progress records of the book; a status change moves exactly one unit
- ``Book.shareCount`` equals the number of ``BookShare`` records
- ``BookTopic.commentCount`` equals the number of its comments
"""

from typing import Any, Optional

from ither.counters import add_child, apply_rating, bump, toggle_membership, transition_status
from ither.logging import logger
from ither.models import (
    READING_STATUS_COUNTERS,
    Book,
    BookCategory,
    BookInput,
    BookReview,
    BookReviewInput,
    BookShare,
    BookTopic,
    BookTopicInput,
    ForumComment,
    ForumCommentInput,
    PostStatus,
    ReadingStatus,
    SharePlatform,
    UserBookProgress,
)
from ither.query import (
    filter_records,
    keyword_search,
    sort_by_popularity,
    sort_by_rating,
    sort_by_recency,
    sort_chronological,
)
from ither.repository import StoreRegistry
from ither.session import FeatureModule, UserSession
from ither.types import SERVER_TIMESTAMP
from ither.utils import utc_now

BOOK_SEARCH_FIELDS = ("title", "author", "description")


class BooklistModule(FeatureModule):
    """Book club facade.

    Attributes:
        books: Books of the last load
        current_book: Book opened with ``load_book``
        reviews: Reviews of the current book, newest first
        my_progress: Caller's reading progress records
        topics: Active discussion topics, newest first
        current_topic: Topic opened with ``load_topic``
        topic_comments: Comments of the current topic, oldest first
    """

    name = "booklist"

    def __init__(self, stores: StoreRegistry, session: UserSession):
        super().__init__(stores, session)
        self.books: list[Book] = []
        self.current_book: Optional[Book] = None
        self.reviews: list[BookReview] = []
        self.my_progress: list[UserBookProgress] = []
        self.topics: list[BookTopic] = []
        self.current_topic: Optional[BookTopic] = None
        self.topic_comments: list[ForumComment] = []

    # =========================================================================
    # Derived state
    # =========================================================================

    @property
    def sorted_books(self) -> list[Book]:
        return sort_by_recency(self.books)

    @property
    def top_rated_books(self) -> list[Book]:
        return sort_by_rating(self.books)

    @property
    def popular_books(self) -> list[Book]:
        """Most finished plus currently-reading first."""
        return sort_by_popularity(self.books)

    @property
    def my_booklist(self) -> list[tuple[Book, UserBookProgress]]:
        books = {book.id: book for book in self.books}
        return [(books[p.bookId], p) for p in self.my_progress if p.bookId in books]

    async def _refresh_book(self, book_id: str) -> Optional[Book]:
        book = await self.stores.books.get(book_id)
        self._replace(self.books, book)
        if book is not None and self.current_book is not None and self.current_book.id == book_id:
            self.current_book = book
        return book

    # =========================================================================
    # Books
    # =========================================================================

    async def load_books(self, category: Optional[BookCategory] = None) -> list[Book]:
        with self._loading():
            books = await self.stores.books.list()
        self.books = sort_by_recency(filter_records(books, category=category))
        return self.books

    async def load_book(self, book_id: str) -> Optional[Book]:
        with self._loading():
            self.current_book = await self.stores.books.get(book_id)
        if self.current_book is None:
            logger.warning(f"⚠️  Book {book_id} not found")
        return self.current_book

    async def create_book(self, data: BookInput) -> Optional[str]:
        if not self._identity("create_book", require_profile=True):
            return None

        book_id = await self.stores.books.create(Book(**self._author_fields(), **data.model_dump()))
        if book_id is None:
            return None

        logger.info(f"✅ Book {book_id} added: {data.title}")
        await self.load_books()
        return book_id

    def search_books(self, keyword: str) -> list[Book]:
        """Search loaded books by title, author and description."""
        return keyword_search(self.sorted_books, keyword, fields=BOOK_SEARCH_FIELDS)

    # =========================================================================
    # Reviews
    # =========================================================================

    async def load_reviews(self, book_id: str) -> list[BookReview]:
        with self._loading():
            reviews = await self.stores.book_reviews.list({"bookId": book_id})
        self.reviews = sort_by_recency(reviews)
        return self.reviews

    async def add_review(self, data: BookReviewInput) -> Optional[str]:
        """Post a review and fold its rating into the book average.

        The review is removed again when the book cannot be updated, so
        ``reviewCount`` always matches the stored reviews.
        """
        if not self._identity("add_review", require_profile=True):
            return None

        if await self.stores.books.get(data.bookId) is None:
            logger.warning(f"⚠️  Cannot review missing book {data.bookId}")
            return None

        review = BookReview(**self._author_fields(), **data.model_dump())
        review_id = await self.stores.book_reviews.create(review)
        if review_id is None:
            return None

        average = await apply_rating(self.stores.books, data.bookId, data.rating)
        if average is None:
            logger.warning(f"⚠️  Rolling back review {review_id}: book {data.bookId} not updated")
            await self.stores.book_reviews.remove(review_id)
            return None

        logger.info(f"✅ Review {review_id} on {data.bookId}: {data.rating}★ (avg {average})")
        await self.load_reviews(data.bookId)
        await self._refresh_book(data.bookId)
        return review_id

    async def toggle_review_like(self, review_id: str) -> Optional[bool]:
        if not self._identity("toggle_review_like"):
            return None

        liked = await toggle_membership(self.stores.book_reviews, review_id, self.user_id)
        if liked is not None:
            self._replace(self.reviews, await self.stores.book_reviews.get(review_id))
        return liked

    # =========================================================================
    # Reading progress
    # =========================================================================

    async def load_my_progress(self) -> list[UserBookProgress]:
        if not self._identity("load_my_progress"):
            return []

        with self._loading():
            progress = await self.stores.book_progress.list({"userId": self.user_id})
        self.my_progress = sort_by_recency(progress)
        return self.my_progress

    async def get_book_progress(self, book_id: str) -> Optional[UserBookProgress]:
        """The caller's progress record for one book, if any."""
        if not self.user_id:
            return None
        found = await self.stores.book_progress.list({"userId": self.user_id, "bookId": book_id})
        return found[0] if found else None

    @staticmethod
    def _progress_dates(status: ReadingStatus, existing: Optional[UserBookProgress]) -> dict[str, Any]:
        dates: dict[str, Any] = {}
        if status == ReadingStatus.READING and (existing is None or existing.startedAt is None):
            dates["startedAt"] = SERVER_TIMESTAMP
        if status == ReadingStatus.FINISHED:
            dates["finishedAt"] = SERVER_TIMESTAMP
        return dates

    async def update_progress(self, book_id: str, status: ReadingStatus) -> bool:
        """Set the caller's reading status and move the book's counters.

        A new record only increments the new status counter; a change
        decrements the old one and increments the new one; the same status
        again changes nothing.
        """
        if not self._identity("update_progress"):
            return False

        if await self.stores.books.get(book_id) is None:
            logger.warning(f"⚠️  Cannot track progress on missing book {book_id}")
            return False

        store = self.stores.book_progress
        existing = await self.get_book_progress(book_id)
        if existing is not None and existing.status == status:
            return True

        if existing is None:
            dates = self._progress_dates(status, None)
            now = utc_now()
            progress = UserBookProgress(
                userId=self.user_id,
                bookId=book_id,
                status=status,
                **{name: now for name in dates},
            )
            progress_id = await store.create(progress, store.compound_id(self.user_id, book_id))
            if progress_id is None:
                return False
            if not await transition_status(self.stores.books, book_id, None, status, READING_STATUS_COUNTERS):
                logger.warning(f"⚠️  Rolling back progress {progress_id}: book {book_id} not updated")
                await store.remove(progress_id)
                return False
        else:
            fields = {"status": status, "updatedAt": SERVER_TIMESTAMP, **self._progress_dates(status, existing)}
            if not await store.update(existing.id, fields):
                return False
            if not await transition_status(
                self.stores.books, book_id, existing.status, status, READING_STATUS_COUNTERS
            ):
                logger.warning(f"⚠️  Reverting progress {existing.id}: book {book_id} not updated")
                await store.update(existing.id, {"status": existing.status})
                return False

        logger.info(f"✅ {self.user_id} progress on {book_id}: {existing.status if existing else None} -> {status}")
        await self.load_my_progress()
        await self._refresh_book(book_id)
        return True

    # =========================================================================
    # Shares
    # =========================================================================

    async def share_book(self, book_id: str, platform: SharePlatform) -> bool:
        """Record a share of a book and bump its ``shareCount``."""
        if not self._identity("share_book"):
            return False
        if await self.stores.books.get(book_id) is None:
            logger.warning(f"⚠️  Cannot share missing book {book_id}")
            return False

        share = BookShare(
            bookId=book_id,
            userId=self.user_id,
            userName=self.session.display_name,
            platform=platform,
        )
        share_id = await add_child(self.stores.book_shares, share, self.stores.books, book_id, "shareCount")
        if share_id is None:
            return False

        await self._refresh_book(book_id)
        return True

    # =========================================================================
    # Topics
    # =========================================================================

    async def load_topics(self, book_id: Optional[str] = None) -> list[BookTopic]:
        filters: dict[str, Any] = {"status": PostStatus.ACTIVE}
        if book_id is not None:
            filters["bookId"] = book_id
        with self._loading():
            topics = await self.stores.book_topics.list(filters)
        self.topics = sort_by_recency(topics)
        return self.topics

    async def load_topic(self, topic_id: str) -> Optional[BookTopic]:
        """Open a topic, counting the view, and load its comments."""
        topic = await self.stores.book_topics.get(topic_id)
        if topic is None or topic.status != PostStatus.ACTIVE:
            self.current_topic = None
            return None

        if await bump(self.stores.book_topics, topic_id, "viewCount"):
            topic = topic.model_copy(update={"viewCount": topic.viewCount + 1})
        self.current_topic = topic
        self._replace(self.topics, topic)
        await self.load_topic_comments(topic_id)
        return topic

    async def create_topic(self, data: BookTopicInput) -> Optional[str]:
        if not self._identity("create_topic", require_profile=True):
            return None

        if data.bookId is not None and await self.stores.books.get(data.bookId) is None:
            logger.warning(f"⚠️  Cannot open a topic on missing book {data.bookId}")
            return None

        topic_id = await self.stores.book_topics.create(BookTopic(**self._author_fields(), **data.model_dump()))
        if topic_id is None:
            return None

        await self.load_topics()
        return topic_id

    async def toggle_topic_like(self, topic_id: str) -> Optional[bool]:
        if not self._identity("toggle_topic_like"):
            return None

        liked = await toggle_membership(self.stores.book_topics, topic_id, self.user_id)
        if liked is not None:
            topic = await self.stores.book_topics.get(topic_id)
            self._replace(self.topics, topic)
            if self.current_topic is not None and self.current_topic.id == topic_id:
                self.current_topic = topic
        return liked

    async def load_topic_comments(self, topic_id: str) -> list[ForumComment]:
        comments = await self.stores.topic_comments.list({"postId": topic_id})
        self.topic_comments = sort_chronological(comments)
        return self.topic_comments

    async def add_topic_comment(self, data: ForumCommentInput) -> Optional[str]:
        """Comment on a topic (``postId`` is the topic id)."""
        if not self._identity("add_topic_comment", require_profile=True):
            return None
        topic = await self.stores.book_topics.get(data.postId)
        if topic is None or topic.status != PostStatus.ACTIVE:
            logger.warning(f"⚠️  Cannot comment on missing topic {data.postId}")
            return None

        comment = ForumComment(**self._author_fields(), **data.model_dump())
        comment_id = await add_child(
            self.stores.topic_comments, comment, self.stores.book_topics, data.postId, "commentCount"
        )
        if comment_id is None:
            return None

        await self.load_topic_comments(data.postId)
        topic = await self.stores.book_topics.get(data.postId)
        self._replace(self.topics, topic)
        if self.current_topic is not None and self.current_topic.id == data.postId:
            self.current_topic = topic
        return comment_id


__all__ = ["BooklistModule", "BOOK_SEARCH_FIELDS"]
