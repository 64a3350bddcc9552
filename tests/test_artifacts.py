"""
Unit tests for the screenshot artifact store.
"""

from browserdeck.artifacts import ScreenshotStore


class TestScreenshotStore:
    def setup_method(self):
        self.store = ScreenshotStore()

    def test_register_and_get(self):
        uri = self.store.register("s1", "shot-1", "aGVsbG8=")

        assert uri == "screenshot://shot-1"
        shot = self.store.get("shot-1")
        assert shot.data == "aGVsbG8="
        assert shot.session_id == "s1"
        assert shot.mime_type == "image/png"
        assert self.store.get(uri) is shot

    def test_register_with_mime_type(self):
        self.store.register("s1", "shot.jpg", "x", "image/jpeg")
        assert self.store.get("shot.jpg").mime_type == "image/jpeg"

    def test_names_by_session(self):
        self.store.register("s1", "a", "x")
        self.store.register("s1", "b", "x")
        self.store.register("s2", "c", "x")

        assert sorted(self.store.names("s1")) == ["a", "b"]
        assert sorted(self.store.names()) == ["a", "b", "c"]
        assert self.store.names("unknown") == []

    def test_clear_session(self):
        self.store.register("s1", "a", "x")
        self.store.register("s1", "b", "x")
        self.store.register("s2", "c", "x")

        assert self.store.clear_session("s1") == 2
        assert self.store.get("a") is None
        assert self.store.get("c") is not None
        assert len(self.store) == 1

    def test_clear_unknown_session(self):
        assert self.store.clear_session("nothing") == 0

    def test_reused_name_moves_to_new_session(self):
        self.store.register("s1", "a", "old")
        self.store.register("s2", "a", "new")

        assert len(self.store) == 1
        self.store.clear_session("s1")
        assert self.store.get("a").data == "new"
