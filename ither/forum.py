"""Discussion forum: posts, threaded comments, likes and social embeds.

Deleting a post is owner-only. A post that only exists in the local
mirror is spliced out; any other post is soft-deleted by setting its status
to ``removed`` so comment counts and links stay valid.
"""

from typing import Any, Optional

from ither.counters import add_child, bump, toggle_membership
from ither.logging import logger
from ither.models import (
    ForumCategory,
    ForumComment,
    ForumCommentInput,
    ForumPost,
    ForumPostInput,
    PostStatus,
)
from ither.query import keyword_search, sort_by_recency, sort_chronological
from ither.repository import StoreRegistry
from ither.session import FeatureModule, UserSession
from ither.social import parse_social_url
from ither.types import SERVER_TIMESTAMP

POST_SEARCH_FIELDS = ("title", "content")


class ForumModule(FeatureModule):
    name = "forum"

    def __init__(self, stores: StoreRegistry, session: UserSession):
        super().__init__(stores, session)
        self.posts: list[ForumPost] = []
        self.current_post: Optional[ForumPost] = None
        self.comments: list[ForumComment] = []

    @property
    def sorted_posts(self) -> list[ForumPost]:
        """Active posts, newest first."""
        return sort_by_recency(p for p in self.posts if p.status == PostStatus.ACTIVE)

    @property
    def my_posts(self) -> list[ForumPost]:
        return [p for p in self.sorted_posts if self.user_id and p.userId == self.user_id]

    def _refresh(self, post: Optional[ForumPost]) -> None:
        self._replace(self.posts, post)
        if post is not None and self.current_post is not None and self.current_post.id == post.id:
            self.current_post = post

    # =========================================================================
    # Posts
    # =========================================================================

    async def load_posts(self, category: Optional[ForumCategory] = None) -> list[ForumPost]:
        filters: dict[str, Any] = {"status": PostStatus.ACTIVE}
        if category is not None and category != "all":
            filters["category"] = category
        with self._loading():
            posts = await self.stores.forum_posts.list(filters)
        self.posts = sort_by_recency(posts)
        return self.posts

    async def load_post(self, post_id: str) -> Optional[ForumPost]:
        """Open a post, counting the view, and load its comments."""
        with self._loading():
            post = await self.stores.forum_posts.get(post_id)
        if post is None or post.status != PostStatus.ACTIVE:
            logger.warning(f"⚠️  Forum post {post_id} not found")
            self.current_post = None
            return None

        if await bump(self.stores.forum_posts, post_id, "viewCount"):
            post = post.model_copy(update={"viewCount": post.viewCount + 1})
        self.current_post = post
        self._replace(self.posts, post)
        await self.load_comments(post_id)
        return post

    async def create_post(self, data: ForumPostInput) -> Optional[str]:
        """Publish a post; a recognized Instagram/Threads/Facebook link becomes its embed."""
        if not self._identity("create_post", require_profile=True):
            return None

        embed = None
        if data.embedUrl:
            embed = parse_social_url(data.embedUrl)
            if embed is None:
                logger.warning(f"⚠️  Ignoring unsupported embed link {data.embedUrl}")

        post = ForumPost(
            **self._author_fields(),
            **data.model_dump(exclude={"embedUrl"}),
            embed=embed,
        )
        post_id = await self.stores.forum_posts.create(post)
        if post_id is None:
            return None

        logger.info(f"✅ Forum post {post_id} created in {data.category}")
        await self.load_posts()
        return post_id

    async def delete_post(self, post_id: str) -> bool:
        if not self._identity("delete_post"):
            return False

        store = self.stores.forum_posts
        post = await store.get(post_id)
        if post is None or post.userId != self.user_id:
            logger.warning(f"⚠️  Forum post {post_id} not found or not owned by {self.user_id}")
            return False

        if store.is_local(post_id):
            ok = await store.remove(post_id)
        else:
            ok = await store.update(post_id, {"status": PostStatus.REMOVED, "updatedAt": SERVER_TIMESTAMP})
        if not ok:
            return False

        self.posts = [p for p in self.posts if p.id != post_id]
        if self.current_post is not None and self.current_post.id == post_id:
            self.current_post = None
        return True

    async def toggle_post_like(self, post_id: str) -> Optional[bool]:
        if not self._identity("toggle_post_like"):
            return None

        liked = await toggle_membership(self.stores.forum_posts, post_id, self.user_id)
        if liked is not None:
            self._refresh(await self.stores.forum_posts.get(post_id))
        return liked

    def search_posts(self, keyword: str) -> list[ForumPost]:
        return keyword_search(self.sorted_posts, keyword, fields=POST_SEARCH_FIELDS)

    # =========================================================================
    # Comments
    # =========================================================================

    async def load_comments(self, post_id: str) -> list[ForumComment]:
        """Comments of one post, oldest first."""
        comments = await self.stores.forum_comments.list({"postId": post_id})
        self.comments = sort_chronological(comments)
        return self.comments

    async def add_comment(self, data: ForumCommentInput) -> Optional[str]:
        """Comment on a post (or reply to a comment) and bump ``commentCount``."""
        if not self._identity("add_comment", require_profile=True):
            return None

        post = await self.stores.forum_posts.get(data.postId)
        if post is None or post.status != PostStatus.ACTIVE:
            logger.warning(f"⚠️  Cannot comment on missing post {data.postId}")
            return None
        if data.parentId is not None:
            parent = await self.stores.forum_comments.get(data.parentId)
            if parent is None or parent.postId != data.postId:
                logger.warning(f"⚠️  Reply target {data.parentId} is not a comment of {data.postId}")
                return None

        comment = ForumComment(**self._author_fields(), **data.model_dump())
        comment_id = await add_child(
            self.stores.forum_comments, comment, self.stores.forum_posts, data.postId, "commentCount"
        )
        if comment_id is None:
            return None

        await self.load_comments(data.postId)
        self._refresh(await self.stores.forum_posts.get(data.postId))
        return comment_id

    async def toggle_comment_like(self, comment_id: str) -> Optional[bool]:
        if not self._identity("toggle_comment_like"):
            return None

        liked = await toggle_membership(self.stores.forum_comments, comment_id, self.user_id)
        if liked is not None:
            self._replace(self.comments, await self.stores.forum_comments.get(comment_id))
        return liked


__all__ = ["ForumModule", "POST_SEARCH_FIELDS"]
