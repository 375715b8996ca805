"""Unit tests for local storage and local mirrors."""

from ither.mirror import MENTORSHIPS_KEY, LocalMirror, LocalStorage
from ither.models import Mentorship, MentorshipStatus


def make_mentorship(mentorship_id: str) -> Mentorship:
    return Mentorship(
        id=mentorship_id,
        mentorId="m",
        menteeId="e",
        initiatedBy="m",
        status=MentorshipStatus.PENDING_MENTEE,
    )


class TestLocalStorage:
    def test_memory_storage(self):
        storage = LocalStorage(None)

        storage.save_json("k", {"a": 1})

        assert storage.load_json("k") == {"a": 1}
        assert storage.keys() == ["k"]
        storage.remove_item("k")
        assert storage.get_item("k") is None

    def test_file_storage(self, tmp_path):
        storage = LocalStorage(tmp_path / "ls")

        storage.save_json("ither-x", ["中文", 1])

        assert (tmp_path / "ls" / "ither-x.json").exists()
        assert LocalStorage(tmp_path / "ls").load_json("ither-x") == ["中文", 1]

    def test_missing_directory_has_no_keys(self, tmp_path):
        assert LocalStorage(tmp_path / "nope").keys() == []

    def test_corrupt_json_returns_default(self, tmp_path):
        storage = LocalStorage(tmp_path)
        storage.set_item("broken", "{not json")

        assert storage.load_json("broken", default=[]) == []


class TestLocalMirror:
    def test_memory_mirror(self):
        mirror = LocalMirror(Mentorship)
        record = make_mentorship("local-mentorship-1")

        mirror.add(record)

        assert len(mirror) == 1
        assert mirror.find("local-mentorship-1") is record
        assert "local-mentorship-1" in mirror
        assert mirror.remove("local-mentorship-1")
        assert not mirror.remove("local-mentorship-1")

    def test_persisted_mirror_reloads(self, tmp_path):
        storage = LocalStorage(tmp_path)
        mirror = LocalMirror(Mentorship, storage, MENTORSHIPS_KEY)
        mirror.add(make_mentorship("local-mentorship-1"))
        mirror.add(make_mentorship("local-mentorship-2"))

        reloaded = LocalMirror(Mentorship, LocalStorage(tmp_path), MENTORSHIPS_KEY)

        assert reloaded.load() == 2
        assert [m.id for m in reloaded] == ["local-mentorship-1", "local-mentorship-2"]
        assert reloaded.find("local-mentorship-1").status == MentorshipStatus.PENDING_MENTEE

    def test_invalid_entries_skipped(self, tmp_path):
        storage = LocalStorage(tmp_path)
        storage.save_json(MENTORSHIPS_KEY, [{"id": "bad"}, make_mentorship("ok").model_dump(mode="json")])

        mirror = LocalMirror(Mentorship, storage, MENTORSHIPS_KEY)

        assert mirror.load() == 1
        assert mirror.find("ok") is not None

    def test_remove_persists(self, tmp_path):
        storage = LocalStorage(tmp_path)
        mirror = LocalMirror(Mentorship, storage, MENTORSHIPS_KEY)
        mirror.add(make_mentorship("a"))
        mirror.add(make_mentorship("b"))

        mirror.remove("a")

        assert [item["id"] for item in storage.load_json(MENTORSHIPS_KEY)] == ["b"]
