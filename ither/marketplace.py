"""Secondhand marketplace: listings, comments and wishlists.

Listing status is owner-driven: ``active -> reserved -> sold`` or
``active -> closed``. A wishlist entry is one record per (user, item) with a
deterministic id, and ``MarketplaceItem.wishlistCount`` follows its
creation and deletion.
"""

from typing import Any, Optional

from pydantic import ValidationError

from ither.counters import add_child, bump, remove_child
from ither.logging import logger
from ither.models import (
    LISTING_TRANSITIONS,
    ListingStatus,
    MarketplaceCategory,
    MarketplaceComment,
    MarketplaceCommentInput,
    MarketplaceItem,
    MarketplaceItemInput,
    MarketplaceWishlist,
)
from ither.query import filter_records, keyword_search, sort_by_recency, sort_chronological
from ither.repository import StoreRegistry
from ither.session import FeatureModule, UserSession
from ither.types import SERVER_TIMESTAMP

EDITABLE_FIELDS = frozenset(MarketplaceItemInput.model_fields)
"""Listing fields an owner may change with ``update_item``."""


class MarketplaceModule(FeatureModule):
    """Marketplace facade.

    Attributes:
        items: Listings of the last load
        current_item: Listing opened with ``load_item``
        comments: Comments of the current listing, oldest first
        my_wishlist: Caller's wishlist entries
        filter_category: Category slot of ``filtered_items`` ("all" = any)
        filter_status: Status slot of ``filtered_items`` ("all" = any)
        search_keyword: Keyword slot of ``filtered_items``
    """

    name = "marketplace"

    def __init__(self, stores: StoreRegistry, session: UserSession):
        super().__init__(stores, session)
        self.items: list[MarketplaceItem] = []
        self.current_item: Optional[MarketplaceItem] = None
        self.comments: list[MarketplaceComment] = []
        self.my_wishlist: list[MarketplaceWishlist] = []
        self.filter_category: str = "all"
        self.filter_status: str = "all"
        self.search_keyword: str = ""

    # =========================================================================
    # Derived state
    # =========================================================================

    @property
    def filtered_items(self) -> list[MarketplaceItem]:
        items = filter_records(self.items, category=self.filter_category, status=self.filter_status)
        return sort_by_recency(keyword_search(items, self.search_keyword))

    @property
    def active_items(self) -> list[MarketplaceItem]:
        return sort_by_recency(i for i in self.items if i.status == ListingStatus.ACTIVE)

    @property
    def my_listings(self) -> list[MarketplaceItem]:
        return sort_by_recency(i for i in self.items if self.user_id and i.userId == self.user_id)

    @property
    def wishlist_items(self) -> list[MarketplaceItem]:
        wanted = {entry.itemId for entry in self.my_wishlist}
        return [i for i in self.items if i.id in wanted]

    def set_filter(self, category: Optional[str] = None, status: Optional[str] = None) -> None:
        self.filter_category = category or "all"
        self.filter_status = status or "all"

    def set_search_keyword(self, keyword: str) -> None:
        self.search_keyword = keyword or ""

    def is_in_wishlist(self, item_id: str) -> bool:
        return any(entry.itemId == item_id for entry in self.my_wishlist)

    async def _refresh_item(self, item_id: str) -> Optional[MarketplaceItem]:
        item = await self.stores.marketplace_items.get(item_id)
        self._replace(self.items, item)
        if item is not None and self.current_item is not None and self.current_item.id == item_id:
            self.current_item = item
        return item

    async def _owned_item(self, action: str, item_id: str) -> Optional[MarketplaceItem]:
        if not self._identity(action):
            return None
        item = await self.stores.marketplace_items.get(item_id)
        if item is None or item.userId != self.user_id:
            logger.warning(f"⚠️  Listing {item_id} not found or not owned by {self.user_id}")
            return None
        return item

    # =========================================================================
    # Listings
    # =========================================================================

    async def load_items(self, category: Optional[MarketplaceCategory] = None) -> list[MarketplaceItem]:
        filters: dict[str, Any] = {}
        if category is not None and category != "all":
            filters["category"] = category
        with self._loading():
            items = await self.stores.marketplace_items.list(filters)
        self.items = sort_by_recency(items)
        return self.items

    async def load_item(self, item_id: str) -> Optional[MarketplaceItem]:
        """Open a listing, counting the view, and load its comments."""
        with self._loading():
            item = await self.stores.marketplace_items.get(item_id)
        if item is None:
            logger.warning(f"⚠️  Listing {item_id} not found")
            self.current_item = None
            return None

        if await bump(self.stores.marketplace_items, item_id, "viewCount"):
            item = item.model_copy(update={"viewCount": item.viewCount + 1})
        self.current_item = item
        self._replace(self.items, item)
        await self.load_comments(item_id)
        return item

    async def create_item(self, data: MarketplaceItemInput) -> Optional[str]:
        if not self._identity("create_item", require_profile=True):
            return None

        item_id = await self.stores.marketplace_items.create(
            MarketplaceItem(**self._author_fields(), **data.model_dump())
        )
        if item_id is None:
            return None

        logger.info(f"✅ Listing {item_id} created: {data.title} (${data.price})")
        await self.load_items()
        return item_id

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> bool:
        """Edit listing details; only the fields of ``MarketplaceItemInput`` are accepted."""
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            logger.warning(f"⚠️  Listing fields not editable: {sorted(unknown)}")
            return False

        item = await self._owned_item("update_item", item_id)
        if item is None:
            return False

        try:
            edited = MarketplaceItemInput.model_validate(
                {**item.model_dump(include=set(EDITABLE_FIELDS)), **fields}
            )
        except ValidationError as e:
            logger.warning(f"⚠️  Invalid listing update for {item_id}: {e.error_count()} errors")
            return False

        changes = {name: getattr(edited, name) for name in fields}
        if not await self.stores.marketplace_items.update(item_id, {**changes, "updatedAt": SERVER_TIMESTAMP}):
            return False
        await self._refresh_item(item_id)
        return True

    async def update_item_status(self, item_id: str, status: ListingStatus) -> bool:
        item = await self._owned_item("update_item_status", item_id)
        if item is None:
            return False

        if status not in LISTING_TRANSITIONS[item.status]:
            logger.warning(f"⚠️  Listing {item_id}: {item.status} -> {status} not allowed")
            return False

        if not await self.stores.marketplace_items.update(
            item_id, {"status": status, "updatedAt": SERVER_TIMESTAMP}
        ):
            return False

        logger.info(f"✅ Listing {item_id}: {item.status} -> {status}")
        await self._refresh_item(item_id)
        return True

    # =========================================================================
    # Comments
    # =========================================================================

    async def load_comments(self, item_id: str) -> list[MarketplaceComment]:
        comments = await self.stores.marketplace_comments.list({"itemId": item_id})
        self.comments = sort_chronological(comments)
        return self.comments

    async def add_comment(self, data: MarketplaceCommentInput) -> Optional[str]:
        """Ask about a listing; the owner's comments are flagged as seller replies."""
        if not self._identity("add_comment", require_profile=True):
            return None

        item = await self.stores.marketplace_items.get(data.itemId)
        if item is None:
            logger.warning(f"⚠️  Cannot comment on missing listing {data.itemId}")
            return None

        comment = MarketplaceComment(
            **self._author_fields(),
            **data.model_dump(),
            isSellerReply=item.userId == self.user_id,
        )
        comment_id = await add_child(
            self.stores.marketplace_comments,
            comment,
            self.stores.marketplace_items,
            data.itemId,
            "commentCount",
        )
        if comment_id is None:
            return None

        await self.load_comments(data.itemId)
        await self._refresh_item(data.itemId)
        return comment_id

    # =========================================================================
    # Wishlist
    # =========================================================================

    async def load_my_wishlist(self) -> list[MarketplaceWishlist]:
        if not self._identity("load_my_wishlist"):
            return []

        entries = await self.stores.marketplace_wishlist.list({"userId": self.user_id})
        self.my_wishlist = sort_by_recency(entries)
        return self.my_wishlist

    async def toggle_wishlist(self, item_id: str) -> Optional[bool]:
        """Add or remove a listing from the caller's wishlist.

        Returns:
            True when the listing is now wishlisted, False when it was
            removed, None on failure
        """
        if not self._identity("toggle_wishlist"):
            return None

        if await self.stores.marketplace_items.get(item_id) is None:
            logger.warning(f"⚠️  Cannot wishlist missing listing {item_id}")
            return None

        store = self.stores.marketplace_wishlist
        existing = await store.list({"userId": self.user_id, "itemId": item_id})
        if existing:
            for entry in existing:
                removed = await remove_child(
                    store, entry.id, self.stores.marketplace_items, item_id, "wishlistCount"
                )
                if not removed:
                    return None
            saved = False
        else:
            entry = MarketplaceWishlist(userId=self.user_id, itemId=item_id)
            entry_id = await add_child(
                store,
                entry,
                self.stores.marketplace_items,
                item_id,
                "wishlistCount",
                record_id=store.compound_id(self.user_id, item_id),
            )
            if entry_id is None:
                return None
            saved = True

        await self.load_my_wishlist()
        await self._refresh_item(item_id)
        return saved


__all__ = ["MarketplaceModule", "EDITABLE_FIELDS"]
