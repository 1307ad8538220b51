import unittest

from questlog.auth import Identity
from questlog.firebase_constants import (
    BLOCKED,
    FOLLOWERS,
    FOLLOWING,
    REQUESTS,
    relation_path,
)
from questlog.relationships import RelationshipStore
from questlog.tests.fakes import RecordingStore
from questlog.types import Privacy, PublicProfile

APP = "app"
ME = Identity(uid="me", display_name="Me", photo_url="me.png")


def _profile(uid, privacy=Privacy.PUBLIC, name=""):
    return PublicProfile(uid=uid, display_name=name, privacy=privacy)


class RelationshipStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = RecordingStore()
        self.relationships = RelationshipStore(self.store, APP)
        self.relationships.start(ME)

    def tearDown(self):
        self.relationships.stop()

    def _doc(self, uid, kind, other):
        return self.store.get(relation_path(APP, uid, kind, other))

    def test_follow_public_profile(self):
        result = self.relationships.follow(_profile("them", name="Them"))
        self.assertTrue(result.ok)
        self.assertEqual(self._doc("me", FOLLOWING, "them")["status"], "following")
        follower = self._doc("them", FOLLOWERS, "me")
        self.assertEqual(follower["displayName"], "Me")
        self.assertEqual(follower["photoURL"], "me.png")
        self.assertIsNotNone(follower["timestamp"])
        self.assertIn("them", self.relationships.following)

    def test_follow_invite_only_creates_request(self):
        result = self.relationships.follow(_profile("them", Privacy.INVITE_ONLY))
        self.assertTrue(result.ok)
        self.assertEqual(self._doc("me", FOLLOWING, "them")["status"], "pending")
        self.assertIsNotNone(self._doc("them", REQUESTS, "me"))
        self.assertIsNone(self._doc("them", FOLLOWERS, "me"))

    def test_display_name_defaults_to_player(self):
        self.relationships.follow(_profile("them"))
        self.assertEqual(self._doc("me", FOLLOWING, "them")["displayName"], "Player")

    def test_follow_self_or_without_identity_is_invalid(self):
        self.assertEqual(self.relationships.follow(_profile("me")).error, "invalid")
        self.relationships.stop()
        self.assertFalse(self.relationships.follow(_profile("them")).ok)
        self.assertEqual(self.store.writes, [])

    def test_unfollow_deletes_both_sides(self):
        self.relationships.follow(_profile("them"))
        self.assertTrue(self.relationships.unfollow("them").ok)
        self.assertIsNone(self._doc("me", FOLLOWING, "them"))
        self.assertIsNone(self._doc("them", FOLLOWERS, "me"))
        self.assertNotIn("them", self.relationships.following)

    def test_unfollow_pending_withdraws_request(self):
        self.relationships.follow(_profile("them", Privacy.INVITE_ONLY))
        self.relationships.unfollow("them")
        self.assertIsNone(self._doc("them", REQUESTS, "me"))

    def test_block_severs_all_links(self):
        self.store.set(relation_path(APP, "me", FOLLOWERS, "them"), {"uid": "them"})
        self.store.set(relation_path(APP, "them", FOLLOWING, "me"), {"uid": "me"})
        self.relationships.follow(_profile("them"))

        self.assertTrue(self.relationships.block(_profile("them", name="Them")).ok)

        self.assertEqual(self._doc("me", BLOCKED, "them")["displayName"], "Them")
        for uid, kind, other in [
            ("me", FOLLOWING, "them"),
            ("me", FOLLOWERS, "them"),
            ("them", FOLLOWERS, "me"),
            ("them", FOLLOWING, "me"),
        ]:
            self.assertIsNone(self._doc(uid, kind, other))
        self.assertIn("them", self.relationships.blocked)

    def test_unblock_does_not_restore_follow(self):
        self.relationships.follow(_profile("them"))
        self.relationships.block(_profile("them"))
        self.assertTrue(self.relationships.unblock("them").ok)
        self.assertIsNone(self._doc("me", BLOCKED, "them"))
        self.assertIsNone(self._doc("me", FOLLOWING, "them"))

    def test_follow_refused_when_blocked_either_way(self):
        self.relationships.block(_profile("them"))
        self.assertFalse(self.relationships.follow(_profile("them")).ok)

        self.store.set(relation_path(APP, "other", BLOCKED, "me"), {"uid": "me"})
        result = self.relationships.follow(_profile("other"))
        self.assertFalse(result.ok)
        self.assertIsNone(self._doc("me", FOLLOWING, "other"))

    def test_failed_mirror_write_is_compensated(self):
        self.store.fail_on.add(("set", relation_path(APP, "them", FOLLOWERS, "me")))
        with self.assertLogs("questlog.relationships", level="ERROR"):
            result = self.relationships.follow(_profile("them"))
        self.assertFalse(result.ok)
        self.assertIsNone(self._doc("me", FOLLOWING, "them"))

    def test_failed_block_restores_deleted_links(self):
        self.relationships.follow(_profile("them"))
        self.store.fail_on.add(("delete", relation_path(APP, "them", FOLLOWING, "me")))
        with self.assertLogs("questlog.relationships", level="ERROR"):
            result = self.relationships.block(_profile("them"))
        self.assertFalse(result.ok)
        self.assertIsNone(self._doc("me", BLOCKED, "them"))
        self.assertIsNotNone(self._doc("me", FOLLOWING, "them"))
        self.assertIsNotNone(self._doc("them", FOLLOWERS, "me"))

    def test_accept_and_decline_requests(self):
        self.store.set(
            relation_path(APP, "me", REQUESTS, "fan"),
            {"uid": "fan", "displayName": "Fan", "status": "pending"},
        )
        self.store.set(
            relation_path(APP, "fan", FOLLOWING, "me"), {"uid": "me", "status": "pending"}
        )
        self.assertTrue(self.relationships.accept_request("fan").ok)
        self.assertEqual(self._doc("me", FOLLOWERS, "fan")["displayName"], "Fan")
        self.assertEqual(self._doc("fan", FOLLOWING, "me")["status"], "following")
        self.assertIsNone(self._doc("me", REQUESTS, "fan"))

        self.store.set(relation_path(APP, "me", REQUESTS, "troll"), {"uid": "troll"})
        self.store.set(relation_path(APP, "troll", FOLLOWING, "me"), {"uid": "me"})
        self.assertTrue(self.relationships.decline_request("troll").ok)
        self.assertIsNone(self._doc("me", REQUESTS, "troll"))
        self.assertIsNone(self._doc("troll", FOLLOWING, "me"))


if __name__ == "__main__":
    unittest.main()
