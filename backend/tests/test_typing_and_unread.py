"""Tests for the typing tracker and unread counter."""
from chathub.chat.models import PRIVATE_BUCKET
from chathub.chat.typing_tracker import TypingTracker
from chathub.chat.unread import UnreadCounter


class TestTypingTracker:

    def test_set_and_get(self):
        tracker = TypingTracker()
        tracker.set_typing("general", "s1", "alice", True)
        tracker.set_typing("general", "s2", "bob", True)
        assert tracker.get_typing_users("general") == ["alice", "bob"]

    def test_excluding_self(self):
        tracker = TypingTracker()
        tracker.set_typing("general", "s1", "alice", True)
        tracker.set_typing("general", "s2", "bob", True)
        assert tracker.get_typing_users("general", excluding="s1") == ["bob"]

    def test_stop_typing_removes_entry(self):
        tracker = TypingTracker()
        tracker.set_typing("general", "s1", "alice", True)
        tracker.set_typing("general", "s1", "alice", False)
        assert tracker.get_typing_users("general") == []
        assert tracker.typing_sessions("general") == []

    def test_stop_typing_for_unknown_room_is_harmless(self):
        tracker = TypingTracker()
        tracker.set_typing("nowhere", "s1", "alice", False)
        assert tracker.get_typing_users("nowhere") == []

    def test_duplicate_usernames_are_kept_per_session(self):
        """Usernames are not unique; each session is its own entry."""
        tracker = TypingTracker()
        tracker.set_typing("general", "s1", "sam", True)
        tracker.set_typing("general", "s2", "sam", True)
        assert tracker.get_typing_users("general") == ["sam", "sam"]

    def test_clear_session_reports_affected_rooms(self):
        tracker = TypingTracker()
        tracker.set_typing("general", "s1", "alice", True)
        tracker.set_typing("random", "s1", "alice", True)
        tracker.set_typing("random", "s2", "bob", True)
        tracker.set_typing("other", "s2", "bob", True)
        affected = tracker.clear_session("s1")
        assert sorted(affected) == ["general", "random"]
        assert tracker.get_typing_users("general") == []
        assert tracker.get_typing_users("random") == ["bob"]
        assert tracker.clear_session("s1") == []


class TestUnreadCounter:

    def test_increment_creates_entry(self):
        counter = UnreadCounter()
        assert counter.increment("s1", "general") == 1
        assert counter.increment("s1", "general") == 2
        assert counter.snapshot("s1") == {"general": 2}

    def test_buckets_are_independent(self):
        counter = UnreadCounter()
        counter.increment("s1", "general")
        counter.increment("s1", PRIVATE_BUCKET)
        counter.increment("s2", "general")
        assert counter.snapshot("s1") == {"general": 1, "private": 1}
        assert counter.snapshot("s2") == {"general": 1}

    def test_reset_sets_zero(self):
        counter = UnreadCounter()
        counter.increment("s1", "general")
        counter.reset("s1", "general")
        assert counter.get("s1", "general") == 0
        assert counter.snapshot("s1") == {"general": 0}

    def test_snapshot_defaults_and_is_a_copy(self):
        counter = UnreadCounter()
        assert counter.snapshot("unknown") == {}
        counter.increment("s1", "general")
        snapshot = counter.snapshot("s1")
        counter.increment("s1", "general")
        assert snapshot == {"general": 1}

    def test_discard(self):
        counter = UnreadCounter()
        counter.increment("s1", "general")
        counter.discard("s1")
        assert counter.snapshot("s1") == {}
        assert counter.get("s1", "general") == 0
