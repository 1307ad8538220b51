import threading
import unittest
from unittest import mock

from questlog.auth import Identity, InMemoryAuthProvider
from questlog.client import create_client
from questlog.config import Settings
from questlog.constants import INITIAL_BOARD
from questlog.firebase_constants import board_path
from questlog.tests.fakes import FakeTimers, HeldWatchStore
from questlog.types import Board, Column, Game, PublicProfile, UserSettings

APP = "app"
ACCOUNT = Identity(uid="u1", display_name="Sam", photo_url="sam.png")


def wait_for(board_store, predicate, timeout=2):
    changed = threading.Event()
    unsubscribe = board_store.subscribe(
        lambda board: changed.set() if predicate(board) else None
    )
    try:
        return predicate(board_store.board) or changed.wait(timeout)
    finally:
        unsubscribe()


class SessionTests(unittest.TestCase):
    def setUp(self):
        self.timers = FakeTimers()
        self.auth = InMemoryAuthProvider(next_account=ACCOUNT)
        self.client = create_client(
            Settings(app_id=APP, use_in_memory_backends=True),
            auth=self.auth,
            start_timer=self.timers,
        )
        self.store = self.client.backend.store
        self.client.start()
        self.assertTrue(self.client.board.wait_until_loaded(timeout=2))

    def tearDown(self):
        self.client.close()

    def test_starts_as_guest(self):
        identity = self.client.session.identity
        self.assertTrue(identity.is_anonymous)
        self.assertEqual(self.client.board.board, INITIAL_BOARD)
        self.assertFalse(self.client.session.needs_onboarding)

    def test_guest_board_is_migrated_on_sign_in(self):
        existing = Board(
            games={"g2": Game(id="g2", title="Two")},
            columns={"backlog": Column(id="backlog", title="To Play", item_ids=("g2",))},
            column_order=("backlog",),
        )
        self.store.set(board_path(APP, "u1"), existing.to_dict())
        guest_game = self.client.board.add_manual_game("One").game_id

        self.assertTrue(self.client.session.sign_in().ok)

        self.assertTrue(
            wait_for(self.client.board, lambda board: "g2" in board.games)
        )
        board = self.client.board.board
        self.assertEqual(board.columns["backlog"].item_ids, ("g2", guest_game))
        stored = Board.from_dict(self.store.get(board_path(APP, "u1")))
        self.assertEqual(stored.columns["backlog"].item_ids, ("g2", guest_game))

    def test_guest_pending_save_is_dropped_on_sign_in(self):
        guest_uid = self.client.session.identity.uid
        self.client.board.add_manual_game("One")
        self.client.session.sign_in()
        self.timers.fire_all()
        self.assertIsNone(self.store.get(board_path(APP, guest_uid)))

    def test_sign_in_failure_is_reported(self):
        self.auth.next_account = None
        result = self.client.session.sign_in()
        self.assertFalse(result.ok)
        self.assertIn("popup", result.error)
        self.assertTrue(self.client.session.identity.is_anonymous)

    def test_sign_out_returns_to_fresh_guest(self):
        self.client.session.sign_in()
        wait_for(self.client.board, lambda board: True)
        self.client.board.add_manual_game("Mine")
        self.client.session.sign_out()
        identity = self.client.session.identity
        self.assertTrue(identity.is_anonymous)
        self.assertTrue(self.client.board.wait_until_loaded(timeout=2))
        self.assertEqual(self.client.board.board, INITIAL_BOARD)

    def test_permanent_account_needs_onboarding(self):
        self.client.session.sign_in()
        self.assertTrue(self.client.session.needs_onboarding)
        result = self.client.session.complete_onboarding(
            UserSettings(privacy="public", display_name="Sam")
        )
        self.assertTrue(result.ok)
        self.assertFalse(self.client.session.needs_onboarding)

    def test_update_profile_renames_account(self):
        self.client.session.sign_in()
        result = self.client.session.update_profile(
            UserSettings(privacy="public", display_name="Samwise")
        )
        self.assertTrue(result.ok)
        self.assertEqual(self.auth.current_identity.display_name, "Samwise")
        self.assertEqual(self.client.session.identity.display_name, "Samwise")

    def test_relationships_follow_identity(self):
        self.client.session.sign_in()
        self.assertTrue(self.client.relationships.follow(PublicProfile(uid="friend")).ok)
        self.assertIn("friend", self.client.relationships.following)
        self.client.session.sign_out()
        self.assertEqual(self.client.relationships.following, {})


class DelayedSnapshotTests(unittest.TestCase):
    """The account's first board snapshot arrives only after local edits."""

    def setUp(self):
        self.timers = FakeTimers()
        self.store = HeldWatchStore()
        self.auth = InMemoryAuthProvider(next_account=ACCOUNT)
        with mock.patch(
            "questlog.dependencies.create_document_store", return_value=self.store
        ):
            self.client = create_client(
                Settings(app_id=APP), auth=self.auth, start_timer=self.timers
            )
        self.client.start()
        existing = Board(
            games={"g2": Game(id="g2", title="Two")},
            columns={"backlog": Column(id="backlog", title="To Play", item_ids=("g2",))},
            column_order=("backlog",),
        )
        self.store.set(board_path(APP, "u1"), existing.to_dict())

    def tearDown(self):
        self.client.close()

    def _stored_titles(self):
        stored = Board.from_dict(self.store.get(board_path(APP, "u1")))
        return sorted(game.title for game in stored.games.values())

    def test_edit_after_guest_sign_in_keeps_account_games(self):
        self.client.board.add_manual_game("One")
        self.store.holding = True

        self.assertTrue(self.client.session.sign_in().ok)
        self.assertIn("g2", self.client.board.board.games)

        self.client.board.add_manual_game("Three")
        self.timers.fire_all()

        self.assertEqual(self._stored_titles(), ["One", "Three", "Two"])

        self.store.release()
        self.assertTrue(
            wait_for(self.client.board, lambda board: len(board.games) == 3)
        )

    def test_edit_after_empty_guest_sign_in_keeps_account_games(self):
        self.store.holding = True

        self.client.session.sign_in()
        self.assertEqual(
            [g.title for g in self.client.board.board.games.values()], ["Two"]
        )
        self.client.board.add_manual_game("Three")
        self.timers.fire_all()

        self.assertEqual(self._stored_titles(), ["Three", "Two"])

    def test_guest_edit_queued_before_sign_in_is_not_saved_to_account(self):
        self.client.board.add_manual_game("One")
        self.store.holding = True
        self.client.session.sign_in()

        self.timers.fire_all()

        self.assertEqual(self._stored_titles(), ["One", "Two"])


if __name__ == "__main__":
    unittest.main()
