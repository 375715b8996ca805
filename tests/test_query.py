"""Unit tests for client-side filtering, search and sorting."""

from datetime import datetime, timedelta, timezone

from ither.mirror import merge_for_read
from ither.models import Book, ListingStatus, MarketplaceCategory, MarketplaceItem
from ither.query import (
    dedupe_by_id,
    filter_records,
    keyword_search,
    matches,
    sort_by_popularity,
    sort_by_rating,
    sort_by_recency,
    sort_chronological,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_item(item_id: str, title: str, **fields) -> MarketplaceItem:
    return MarketplaceItem(id=item_id, userId="u1", title=title, **fields)


class TestFilters:
    def test_matches_all_filters(self):
        item = make_item("i1", "Desk", category=MarketplaceCategory.FURNITURE)

        assert matches(item, {"category": "furniture", "status": ListingStatus.ACTIVE})
        assert not matches(item, {"category": "furniture", "status": "sold"})
        assert matches(item, None)

    def test_matches_none_means_unset(self):
        item = make_item("i1", "Desk")

        assert matches(item, {"originalPrice": None})
        assert not matches(make_item("i2", "Desk", originalPrice=10), {"originalPrice": None})

    def test_matches_plain_mapping(self):
        assert matches({"status": "active"}, {"status": "active"})

    def test_filter_records_ignores_all_and_none(self):
        items = [
            make_item("i1", "Desk", category=MarketplaceCategory.FURNITURE),
            make_item("i2", "Phone", category=MarketplaceCategory.ELECTRONICS, status=ListingStatus.SOLD),
        ]

        assert [i.id for i in filter_records(items, category="all", status=None)] == ["i1", "i2"]
        assert [i.id for i in filter_records(items, category="all", status="sold")] == ["i2"]


class TestKeywordSearch:
    def test_case_insensitive_substring(self):
        items = [
            make_item("i1", "Vue.js 設計與實作"),
            make_item("i2", "React Handbook"),
            make_item("i3", "Standing desk"),
        ]

        hits = keyword_search(items, "vue")

        assert [i.id for i in hits] == ["i1"]

    def test_or_across_fields(self):
        items = [
            make_item("i1", "Headphones", description="noise cancelling"),
            make_item("i2", "Noise machine"),
        ]

        assert [i.id for i in keyword_search(items, "NOISE")] == ["i1", "i2"]

    def test_blank_keyword_returns_everything(self):
        items = [make_item("i1", "A"), make_item("i2", "B")]

        assert keyword_search(items, "   ") == items
        assert keyword_search(items, None) == items

    def test_custom_fields(self):
        books = [Book(id="b1", userId="u1", title="Refactoring", author="Martin Fowler")]

        assert keyword_search(books, "fowler") == []
        assert keyword_search(books, "fowler", fields=("title", "author")) == books


class TestSorting:
    def test_sort_by_recency_newest_first(self):
        items = [
            make_item("old", "A", createdAt=T0),
            make_item("new", "B", createdAt=T0 + timedelta(days=2)),
            make_item("mid", "C", createdAt=T0 + timedelta(days=1)),
        ]

        assert [i.id for i in sort_by_recency(items)] == ["new", "mid", "old"]
        assert [i.id for i in sort_chronological(items)] == ["old", "mid", "new"]

    def test_sort_is_stable(self):
        items = [make_item(f"i{n}", "X", createdAt=T0) for n in range(5)]

        assert [i.id for i in sort_by_recency(items)] == [f"i{n}" for n in range(5)]

    def test_sort_by_rating(self):
        books = [
            Book(id="b1", userId="u", title="A", avgRating=3.5),
            Book(id="b2", userId="u", title="B", avgRating=4.8),
            Book(id="b3", userId="u", title="C"),
        ]

        assert [b.id for b in sort_by_rating(books)] == ["b2", "b1", "b3"]

    def test_sort_by_popularity(self):
        books = [
            Book(id="b1", userId="u", title="A", finishedCount=1, readingCount=1),
            Book(id="b2", userId="u", title="B", finishedCount=3),
            Book(id="b3", userId="u", title="C", readingCount=2, wantToReadCount=10),
        ]

        assert [b.id for b in sort_by_popularity(books)] == ["b2", "b1", "b3"]


class TestDedupe:
    def test_dedupe_keeps_first(self):
        first = make_item("i1", "first")
        second = make_item("i1", "second")

        assert dedupe_by_id([first, second]) == [first]

    def test_merge_for_read_earliest_source_wins(self):
        seed = [make_item("a", "seed-a"), make_item("b", "seed-b")]
        mirror = [make_item("b", "mirror-b"), make_item("local-item-1", "mirror-new")]
        remote = [make_item("local-item-1", "remote-dup"), make_item("c", "remote-c")]

        merged = merge_for_read(seed, mirror, remote)

        assert [i.id for i in merged] == ["a", "b", "local-item-1", "c"]
        assert [i.title for i in merged] == ["seed-a", "seed-b", "mirror-new", "remote-c"]
