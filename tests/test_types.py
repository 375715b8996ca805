"""Unit tests for write transforms."""

from datetime import datetime, timezone

from ither.types import (
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    Increment,
    apply_transforms,
    merge_documents,
)

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class TestIncrement:
    def test_increment_adds(self):
        doc = apply_transforms({"likeCount": 2}, {"likeCount": Increment(3)}, NOW)

        assert doc["likeCount"] == 5

    def test_increment_missing_field_starts_at_zero(self):
        doc = apply_transforms({}, {"viewCount": Increment(1)}, NOW)

        assert doc["viewCount"] == 1

    def test_decrement_clamps_at_zero(self):
        doc = apply_transforms({"wishlistCount": 0}, {"wishlistCount": Increment(-1)}, NOW)

        assert doc["wishlistCount"] == 0

    def test_decrement_without_floor(self):
        doc = apply_transforms({"balance": 0}, {"balance": Increment(-2, floor=None)}, NOW)

        assert doc["balance"] == -2


class TestArrayTransforms:
    def test_array_union_is_idempotent(self):
        doc = {"likedBy": ["u1"]}

        apply_transforms(doc, {"likedBy": ArrayUnion(["u1", "u2"])}, NOW)
        apply_transforms(doc, {"likedBy": ArrayUnion(["u2"])}, NOW)

        assert doc["likedBy"] == ["u1", "u2"]

    def test_array_remove(self):
        doc = apply_transforms({"likedBy": ["u1", "u2", "u1"]}, {"likedBy": ArrayRemove(["u1"])}, NOW)

        assert doc["likedBy"] == ["u2"]

    def test_array_remove_missing_field(self):
        doc = apply_transforms({}, {"likedBy": ArrayRemove(["u1"])}, NOW)

        assert doc["likedBy"] == []


class TestServerTimestamp:
    def test_server_timestamp_is_singleton(self):
        from ither.types import _ServerTimestamp

        assert _ServerTimestamp() is SERVER_TIMESTAMP
        assert repr(SERVER_TIMESTAMP) == "SERVER_TIMESTAMP"

    def test_resolved_to_clock(self):
        doc = apply_transforms({}, {"acceptedAt": SERVER_TIMESTAMP}, NOW)

        assert doc["acceptedAt"] == NOW

    def test_resolved_inside_nested_mapping(self):
        doc = apply_transforms({}, {"mentorProfile": {"bio": "hi", "createdAt": SERVER_TIMESTAMP}}, NOW)

        assert doc["mentorProfile"] == {"bio": "hi", "createdAt": NOW}


class TestMergeDocuments:
    def test_merge_keeps_untouched_fields(self):
        doc = {"nickname": "Ada", "bio": "old"}

        merged = merge_documents(doc, {"bio": "new"}, NOW)

        assert merged == {"nickname": "Ada", "bio": "new"}

    def test_merge_is_deep_for_nested_mappings(self):
        doc = {"mentorProfile": {"bio": "old", "maxMentees": 2}, "nickname": "Ada"}

        merged = merge_documents(doc, {"mentorProfile": {"bio": "new"}}, NOW)

        assert merged["mentorProfile"] == {"bio": "new", "maxMentees": 2}
        assert merged["nickname"] == "Ada"

    def test_merge_resolves_transforms(self):
        merged = merge_documents({"shareCount": 1}, {"shareCount": Increment(1), "updatedAt": SERVER_TIMESTAMP}, NOW)

        assert merged == {"shareCount": 2, "updatedAt": NOW}
