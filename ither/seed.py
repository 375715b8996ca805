"""Demo records for mock mode.

``make_seed()`` builds a brand-new ``SeedData`` on every call, so each
session (and each test) owns its records and mutates them in place without
leaking into the next one.

Counters on the seeded parents match the seeded children: ``likeCount``
equals ``len(likedBy)``, ``commentCount`` the number of seeded comments,
``wishlistCount`` the seeded wishlist entries and the reading counters the
seeded progress records. View counts have no child records.

Example:
    >>> seed = make_seed()
    >>> [book.id for book in seed.books]
    ['book-1', 'book-2', 'book-3', 'book-4']
    >>> make_seed().books[0] is seed.books[0]
    False
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ither.models import (
    Book,
    BookCategory,
    BookReview,
    BookShare,
    BookTopic,
    ForumCategory,
    ForumComment,
    ForumPost,
    ItemCondition,
    ListingStatus,
    MarketplaceCategory,
    MarketplaceComment,
    MarketplaceItem,
    MarketplaceWishlist,
    MentorPost,
    MentorPostType,
    Mentorship,
    ReadingStatus,
    UserBookProgress,
    UserProfile,
)
from ither.utils import utc_now

HOUR = 3600
DAY = 86400


@dataclass
class SeedData:
    """One session's demo records, keyed like the record stores."""

    mentor_posts: list[MentorPost] = field(default_factory=list)
    mentorships: list[Mentorship] = field(default_factory=list)
    user_profiles: list[UserProfile] = field(default_factory=list)
    books: list[Book] = field(default_factory=list)
    book_reviews: list[BookReview] = field(default_factory=list)
    book_shares: list[BookShare] = field(default_factory=list)
    book_progress: list[UserBookProgress] = field(default_factory=list)
    book_topics: list[BookTopic] = field(default_factory=list)
    topic_comments: list[ForumComment] = field(default_factory=list)
    forum_posts: list[ForumPost] = field(default_factory=list)
    forum_comments: list[ForumComment] = field(default_factory=list)
    marketplace_items: list[MarketplaceItem] = field(default_factory=list)
    marketplace_comments: list[MarketplaceComment] = field(default_factory=list)
    marketplace_wishlist: list[MarketplaceWishlist] = field(default_factory=list)

    def total(self) -> int:
        return sum(len(records) for records in vars(self).values())


def _profiles(ago) -> list[UserProfile]:
    people = [
        ("mock-1", "Sophia", "Frontend Dev", ["Vue.js", "TypeScript"]),
        ("mock-2", "科技小白", "Fullstack", ["Node.js", "Vue.js"]),
        ("mock-3", "職場小菜鳥", "QA Engineer", ["Testing", "Cypress"]),
        ("mock-4", "Emily", "Engineering Manager", ["Leadership", "System Design"]),
        ("mock-5", "忙碌的媽咪", "Backend Dev", ["Go", "PostgreSQL"]),
    ]
    return [
        UserProfile(
            id=uid,
            userId=uid,
            nickname=nickname,
            role=role,
            skills=skills,
            createdAt=ago(30 * DAY),
        )
        for uid, nickname, role, skills in people
    ]


def _mentor_posts(ago) -> list[MentorPost]:
    return [
        MentorPost(
            id="mentor-post-1",
            userId="mock-mentor-1",
            userName="Alice Chen",
            userRole="Frontend Dev",
            type=MentorPostType.OFFER,
            title="想幫助前端新手成長",
            areas=["Vue.js", "TypeScript", "React"],
            description="我有5年前端開發經驗，目前在新創公司擔任 Tech Lead。希望能幫助剛入行的朋友避開一些坑，分享實戰經驗。",
            createdAt=ago(DAY),
            updatedAt=ago(DAY),
        ),
        MentorPost(
            id="mentor-post-2",
            userId="mock-mentor-2",
            userName="Emily Wang",
            userRole="Backend Dev",
            type=MentorPostType.OFFER,
            title="後端架構設計指導",
            areas=["Node.js", "PostgreSQL", "AWS"],
            description="專注於後端系統設計與雲端架構，可以指導 API 設計、資料庫優化、微服務架構等主題。",
            createdAt=ago(2 * DAY),
            updatedAt=ago(2 * DAY),
        ),
        MentorPost(
            id="mentor-post-3",
            userId="mock-mentee-1",
            userName="小明",
            userRole="Backend Dev",
            type=MentorPostType.REQUEST,
            title="想學習 Vue.js 和前端開發",
            areas=["Vue.js", "JavaScript", "HTML/CSS"],
            description="我是後端工程師，想轉型全端。目前自學 Vue.js 中，希望找到有經驗的前輩指導。",
            createdAt=ago(12 * HOUR),
            updatedAt=ago(12 * HOUR),
        ),
        MentorPost(
            id="mentor-post-4",
            userId="mock-mentee-2",
            userName="轉職中的 Cathy",
            userRole="Student/Learner",
            type=MentorPostType.REQUEST,
            title="求職面試準備指導",
            areas=["Agile/Scrum", "Product Management"],
            description="即將畢業，想進入科技業當 PM。希望有前輩能分享面試經驗和職涯建議。",
            createdAt=ago(3 * DAY),
            updatedAt=ago(3 * DAY),
        ),
    ]


def _books(ago) -> list[Book]:
    return [
        Book(
            id="book-1",
            userId="mock-1",
            userName="Sophia",
            userRole="Frontend Dev",
            title="重構：改善既有程式的設計",
            author="Martin Fowler",
            category=BookCategory.TECH,
            description="軟體開發的經典之作，教你如何有系統地改善程式碼品質。",
            tags=["重構", "程式設計", "軟體工程"],
            avgRating=4.5,
            reviewCount=2,
            finishedCount=2,
            createdAt=ago(30 * DAY),
        ),
        Book(
            id="book-2",
            userId="mock-2",
            userName="科技小白",
            userRole="Fullstack",
            title="原子習慣",
            author="James Clear",
            category=BookCategory.SELF_GROWTH,
            description="透過微小的習慣改變，創造驚人的成果。提供實用的框架，幫助你建立好習慣、戒除壞習慣。",
            tags=["習慣", "自我成長", "生產力"],
            avgRating=5.0,
            reviewCount=1,
            wantToReadCount=1,
            readingCount=1,
            finishedCount=1,
            createdAt=ago(15 * DAY),
        ),
        Book(
            id="book-3",
            userId="mock-3",
            userName="職場小菜鳥",
            userRole="QA Engineer",
            title="軟技能：代碼之外的生存指南",
            author="John Sonmez",
            category=BookCategory.CAREER,
            description="程式設計師的職涯發展不只是寫程式，涵蓋職涯規劃、學習方法、理財等軟技能主題。",
            tags=["軟技能", "職涯發展"],
            readingCount=1,
            createdAt=ago(10 * DAY),
        ),
        Book(
            id="book-4",
            userId="mock-4",
            userName="Emily",
            userRole="Engineering Manager",
            title="高效能人士的七個習慣",
            author="Stephen Covey",
            category=BookCategory.BUSINESS,
            description="經典的個人效能書籍，從依賴到獨立再到互賴的成長路徑。",
            tags=["效能", "領導力", "習慣"],
            createdAt=ago(5 * DAY),
        ),
    ]


def _book_reviews(ago) -> list[BookReview]:
    return [
        BookReview(
            id="review-1",
            bookId="book-1",
            userId="mock-2",
            userName="科技小白",
            userRole="Fullstack",
            rating=5,
            content="這本書徹底改變了我寫程式的方式！每個重構手法都有清楚的範例，超級實用。",
            readingStatus=ReadingStatus.FINISHED,
            likeCount=2,
            likedBy=["mock-1", "mock-3"],
            createdAt=ago(2 * DAY),
        ),
        BookReview(
            id="review-2",
            bookId="book-1",
            userId="mock-3",
            userName="職場小菜鳥",
            userRole="QA Engineer",
            rating=4,
            content="內容很棒，但有些範例用的是 Java，需要轉換一下思維。整體還是很值得一讀！",
            readingStatus=ReadingStatus.FINISHED,
            likeCount=1,
            likedBy=["mock-1"],
            createdAt=ago(DAY),
        ),
        BookReview(
            id="review-3",
            bookId="book-2",
            userId="mock-1",
            userName="Sophia",
            userRole="Frontend Dev",
            rating=5,
            content="讀完後開始用「原子習慣」的方法建立每天學習的習慣。書中的 1% 進步法則讓我不再焦慮。",
            readingStatus=ReadingStatus.FINISHED,
            likeCount=3,
            likedBy=["mock-2", "mock-3", "mock-4"],
            createdAt=ago(3 * DAY),
        ),
    ]


def _book_progress(ago) -> list[UserBookProgress]:
    rows = [
        ("progress-1", "mock-2", "book-1", ReadingStatus.FINISHED),
        ("progress-2", "mock-3", "book-1", ReadingStatus.FINISHED),
        ("progress-3", "mock-1", "book-2", ReadingStatus.FINISHED),
        ("progress-4", "mock-4", "book-2", ReadingStatus.READING),
        ("progress-5", "mock-3", "book-2", ReadingStatus.WANT_TO_READ),
        ("progress-6", "mock-4", "book-3", ReadingStatus.READING),
    ]
    return [
        UserBookProgress(
            id=progress_id,
            userId=uid,
            bookId=book_id,
            status=status,
            startedAt=ago(7 * DAY) if status != ReadingStatus.WANT_TO_READ else None,
            finishedAt=ago(3 * DAY) if status == ReadingStatus.FINISHED else None,
            createdAt=ago(7 * DAY),
        )
        for progress_id, uid, book_id, status in rows
    ]


def _book_topics(ago) -> list[BookTopic]:
    return [
        BookTopic(
            id="topic-1",
            bookId="book-2",
            userId="mock-4",
            userName="Emily",
            userRole="Engineering Manager",
            title="大家都用什麼方法追蹤習慣？",
            content="讀完原子習慣後想開始記錄，想知道大家用 App 還是紙本？",
            tags=["習慣", "工具"],
            viewCount=42,
            likeCount=1,
            likedBy=["mock-1"],
            commentCount=1,
            createdAt=ago(2 * DAY),
        ),
        BookTopic(
            id="topic-2",
            userId="mock-5",
            userName="忙碌的媽咪",
            userRole="Backend Dev",
            title="下個月讀書會選書討論",
            content="歡迎推薦下個月想一起讀的書！",
            tags=["讀書會"],
            viewCount=18,
            createdAt=ago(DAY),
        ),
    ]


def _topic_comments(ago) -> list[ForumComment]:
    return [
        ForumComment(
            id="topic-comment-1",
            postId="topic-1",
            userId="mock-1",
            userName="Sophia",
            userRole="Frontend Dev",
            content="我用 Notion 做習慣追蹤表，搭配每週回顧。",
            createdAt=ago(DAY),
        ),
    ]


def _forum_posts(ago) -> list[ForumPost]:
    return [
        ForumPost(
            id="post-1",
            userId="mock-1",
            userName="Sophia",
            userRole="Frontend Dev",
            category=ForumCategory.TECH,
            title="大家怎麼看 Vue 3.4 的新功能？",
            content="最近 Vue 3.4 發布了，新增了很多實用的功能，像是 defineModel 的穩定版。大家有開始用了嗎？",
            tags=["Vue.js", "Frontend", "新功能"],
            viewCount=128,
            likeCount=2,
            commentCount=2,
            likedBy=["mock-2", "mock-3"],
            createdAt=ago(DAY),
        ),
        ForumPost(
            id="post-2",
            userId="mock-2",
            userName="科技小白",
            userRole="Fullstack",
            category=ForumCategory.CAREER,
            title="從小公司跳到大公司的心得分享",
            content="最近剛完成轉職，從 10 人的新創跳到 500+ 人的外商。面試準備真的很重要，軟實力比你想像的更重要。",
            tags=["轉職", "面試", "外商"],
            viewCount=256,
            likeCount=3,
            commentCount=2,
            likedBy=["mock-1", "mock-3", "mock-4"],
            createdAt=ago(2 * DAY),
        ),
        ForumPost(
            id="post-3",
            userId="mock-5",
            userName="忙碌的媽咪",
            userRole="Backend Dev",
            category=ForumCategory.LIFE,
            title="工程師媽媽的一天是怎麼過的？",
            content="常常有人問我怎麼兼顧工作和家庭，今天來分享一下我的日常。",
            tags=["WLB", "育兒"],
            viewCount=189,
            likeCount=4,
            likedBy=["mock-1", "mock-2", "mock-4", "mock-6"],
            createdAt=ago(3 * DAY),
        ),
        ForumPost(
            id="post-4",
            userId="mock-4",
            userName="Emily",
            userRole="Engineering Manager",
            category=ForumCategory.LEARNING,
            title="推薦幾個學習系統設計的資源",
            content="System Design Primer、Designing Data-Intensive Applications、ByteByteGo。大家有其他推薦嗎？",
            tags=["系統設計", "面試", "學習資源"],
            viewCount=312,
            likeCount=4,
            likedBy=["mock-1", "mock-2", "mock-3", "mock-5"],
            createdAt=ago(4 * DAY),
        ),
    ]


def _forum_comments(ago) -> list[ForumComment]:
    return [
        ForumComment(
            id="comment-1",
            postId="post-1",
            userId="mock-2",
            userName="科技小白",
            userRole="Fullstack",
            content="defineModel 真的很方便！省去很多 boilerplate code",
            likeCount=1,
            likedBy=["mock-1"],
            createdAt=ago(23 * HOUR),
        ),
        ForumComment(
            id="comment-2",
            postId="post-1",
            userId="mock-3",
            userName="職場小菜鳥",
            userRole="QA Engineer",
            content="我也覺得！而且 IDE 的支援也越來越好了",
            createdAt=ago(22 * HOUR),
        ),
        ForumComment(
            id="comment-3",
            postId="post-2",
            userId="mock-1",
            userName="Sophia",
            userRole="Frontend Dev",
            content="謝謝分享！請問面試準備大概花了多久時間？",
            likeCount=1,
            likedBy=["mock-2"],
            createdAt=ago(47 * HOUR),
        ),
        ForumComment(
            id="comment-4",
            postId="post-2",
            userId="mock-2",
            userName="科技小白",
            userRole="Fullstack",
            content="@Sophia 大概準備了 2 個月左右，主要刷題和練習系統設計",
            likeCount=2,
            likedBy=["mock-1", "mock-4"],
            parentId="comment-3",
            createdAt=ago(46 * HOUR),
        ),
    ]


def _marketplace_items(ago) -> list[MarketplaceItem]:
    return [
        MarketplaceItem(
            id="item-1",
            userId="mock-1",
            userName="Sophia",
            userRole="Frontend Dev",
            title="MacBook Pro 13吋 2020 M1",
            description="使用約一年半，電池循環次數約 150 次，外觀 9 成新。附原廠充電器，可面交驗機。",
            category=MarketplaceCategory.ELECTRONICS,
            condition=ItemCondition.GOOD,
            price=28000,
            originalPrice=42900,
            tradeLocation="捷運站面交",
            viewCount=156,
            wishlistCount=2,
            commentCount=3,
            createdAt=ago(2 * DAY),
        ),
        MarketplaceItem(
            id="item-2",
            userId="mock-2",
            userName="科技小白",
            userRole="Fullstack",
            title="人體工學椅 Herman Miller Aeron",
            description="在家工作必備！B 尺寸適合 160-175 公分。使用約 2 年，功能正常。",
            category=MarketplaceCategory.FURNITURE,
            condition=ItemCondition.GOOD,
            price=18000,
            originalPrice=45000,
            tradeLocation="台北車站",
            viewCount=89,
            wishlistCount=1,
            createdAt=ago(DAY),
        ),
        MarketplaceItem(
            id="item-3",
            userId="mock-3",
            userName="職場小菜鳥",
            userRole="QA Engineer",
            title="程式設計書籍一批（共 8 本）",
            description="整理書櫃出清！包含：Clean Code、重構、設計模式、演算法導論等經典書籍。可單買可整批。",
            category=MarketplaceCategory.BOOKS,
            condition=ItemCondition.LIKE_NEW,
            price=1200,
            tradeLocation="超商取貨",
            viewCount=234,
            commentCount=2,
            createdAt=ago(3 * DAY),
        ),
        MarketplaceItem(
            id="item-4",
            userId="mock-4",
            userName="Emily",
            userRole="Engineering Manager",
            title="Sony WH-1000XM4 藍牙耳機",
            description="降噪耳機界的標竿！黑色款，購入約 8 個月，附原廠收納盒和充電線。",
            category=MarketplaceCategory.ELECTRONICS,
            condition=ItemCondition.LIKE_NEW,
            price=6500,
            originalPrice=10900,
            tradeLocation="公司附近",
            status=ListingStatus.RESERVED,
            viewCount=178,
            createdAt=ago(5 * DAY),
        ),
        MarketplaceItem(
            id="item-5",
            userId="mock-1",
            userName="Sophia",
            userRole="Frontend Dev",
            title="Lululemon 瑜伽墊 + 瑜伽磚",
            description="居家運動好夥伴！5mm 瑜伽墊 + 兩塊瑜伽磚，使用次數不超過 10 次。",
            category=MarketplaceCategory.SPORTS,
            condition=ItemCondition.LIKE_NEW,
            price=1800,
            originalPrice=3200,
            tradeLocation="捷運站面交",
            viewCount=67,
            createdAt=ago(6 * DAY),
        ),
    ]


def _marketplace_comments(ago) -> list[MarketplaceComment]:
    return [
        MarketplaceComment(
            id="item-comment-1",
            itemId="item-1",
            userId="mock-2",
            userName="科技小白",
            userRole="Fullstack",
            content="請問可以議價嗎？27000 可以嗎？",
            createdAt=ago(DAY),
        ),
        MarketplaceComment(
            id="item-comment-2",
            itemId="item-1",
            userId="mock-1",
            userName="Sophia",
            userRole="Frontend Dev",
            content="不好意思，這個價格已經很實惠了，不議價喔～",
            isSellerReply=True,
            parentId="item-comment-1",
            createdAt=ago(23 * HOUR),
        ),
        MarketplaceComment(
            id="item-comment-3",
            itemId="item-1",
            userId="mock-3",
            userName="職場小菜鳥",
            userRole="QA Engineer",
            content="請問還有在賣嗎？想約這週末看貨",
            createdAt=ago(12 * HOUR),
        ),
        MarketplaceComment(
            id="item-comment-4",
            itemId="item-3",
            userId="mock-4",
            userName="Emily",
            userRole="Engineering Manager",
            content="請問 Clean Code 可以單買嗎？",
            createdAt=ago(2 * DAY),
        ),
        MarketplaceComment(
            id="item-comment-5",
            itemId="item-3",
            userId="mock-3",
            userName="職場小菜鳥",
            userRole="QA Engineer",
            content="可以喔！單買 250 元，私訊我約時間",
            isSellerReply=True,
            parentId="item-comment-4",
            createdAt=ago(47 * HOUR),
        ),
    ]


def _marketplace_wishlist(ago) -> list[MarketplaceWishlist]:
    return [
        MarketplaceWishlist(id="mock-2_item-1", userId="mock-2", itemId="item-1", createdAt=ago(DAY)),
        MarketplaceWishlist(id="mock-3_item-1", userId="mock-3", itemId="item-1", createdAt=ago(DAY)),
        MarketplaceWishlist(id="mock-1_item-2", userId="mock-1", itemId="item-2", createdAt=ago(HOUR)),
    ]


def make_seed(now: datetime | None = None) -> SeedData:
    """Build a fresh set of demo records.

    Args:
        now: Reference time the relative timestamps are computed from

    Returns:
        SeedData owned by the caller
    """
    now = now or utc_now()

    def ago(seconds: float) -> datetime:
        return now - timedelta(seconds=seconds)

    return SeedData(
        mentor_posts=_mentor_posts(ago),
        user_profiles=_profiles(ago),
        books=_books(ago),
        book_reviews=_book_reviews(ago),
        book_progress=_book_progress(ago),
        book_topics=_book_topics(ago),
        topic_comments=_topic_comments(ago),
        forum_posts=_forum_posts(ago),
        forum_comments=_forum_comments(ago),
        marketplace_items=_marketplace_items(ago),
        marketplace_comments=_marketplace_comments(ago),
        marketplace_wishlist=_marketplace_wishlist(ago),
    )


__all__ = ["SeedData", "make_seed"]
