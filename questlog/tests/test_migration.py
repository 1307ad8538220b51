import unittest

from questlog.firebase_constants import board_path
from questlog.migration import merge_guest_board, migrate_guest_board
from questlog.tests.fakes import RecordingStore
from questlog.types import Board, Column, Game

APP = "app"


def _board(games, columns, order=None) -> Board:
    return Board(
        games={gid: Game(id=gid, title=title) for gid, title in games.items()},
        columns={
            cid: Column(id=cid, title=cid, item_ids=tuple(ids))
            for cid, ids in columns.items()
        },
        column_order=tuple(order if order is not None else columns),
    )


class MergeGuestBoardTests(unittest.TestCase):
    def test_guest_ids_are_appended_after_target_order(self):
        guest = _board({"g1": "One"}, {"backlog": ["g1"]})
        target = _board({"g2": "Two"}, {"backlog": ["g2"]})
        merged = merge_guest_board(guest, target)
        self.assertEqual(set(merged.games), {"g1", "g2"})
        self.assertEqual(merged.columns["backlog"].item_ids, ("g2", "g1"))

    def test_guest_wins_on_id_collision(self):
        guest = _board({"g1": "A"}, {"backlog": ["g1"]})
        target = _board({"g1": "B"}, {"backlog": ["g1"]})
        merged = merge_guest_board(guest, target)
        self.assertEqual(merged.games["g1"].title, "A")
        self.assertEqual(merged.columns["backlog"].item_ids, ("g1",))

    def test_no_target_board_keeps_guest_board(self):
        guest = _board({"g1": "A"}, {"backlog": ["g1"]})
        self.assertIs(merge_guest_board(guest, None), guest)

    def test_guest_only_column_games_land_in_first_target_column(self):
        guest = _board({"g1": "A"}, {"col-x": ["g1"]})
        target = _board({"g2": "B"}, {"backlog": ["g2"], "playing": []})
        merged = merge_guest_board(guest, target)
        self.assertNotIn("col-x", merged.columns)
        self.assertEqual(merged.columns["backlog"].item_ids, ("g2", "g1"))
        self.assertEqual(merged.column_order, ("backlog", "playing"))

    def test_target_column_order_is_kept(self):
        guest = _board({}, {"backlog": [], "playing": []})
        target = _board({}, {"playing": [], "backlog": []}, order=["playing", "backlog"])
        self.assertEqual(merge_guest_board(guest, target).column_order, ("playing", "backlog"))


class MigrateGuestBoardTests(unittest.TestCase):
    def setUp(self):
        self.store = RecordingStore()

    def test_writes_merged_board(self):
        target = _board({"g2": "Two"}, {"backlog": ["g2"]})
        self.store.set(board_path(APP, "u1"), target.to_dict())
        guest = _board({"g1": "One"}, {"backlog": ["g1"]})

        merged = migrate_guest_board(self.store, APP, guest, "u1")

        stored = Board.from_dict(self.store.get(board_path(APP, "u1")))
        self.assertEqual(stored, merged)
        self.assertEqual(stored.columns["backlog"].item_ids, ("g2", "g1"))

    def test_empty_guest_board_is_not_migrated(self):
        guest = _board({}, {"backlog": []})
        self.assertIsNone(migrate_guest_board(self.store, APP, guest, "u1"))
        self.assertEqual(self.store.writes, [])

    def test_failure_is_logged_not_raised(self):
        self.store.fail_on.add("set")
        guest = _board({"g1": "One"}, {"backlog": ["g1"]})
        with self.assertLogs("questlog.migration", level="ERROR"):
            self.assertIsNone(migrate_guest_board(self.store, APP, guest, "u1"))


if __name__ == "__main__":
    unittest.main()
