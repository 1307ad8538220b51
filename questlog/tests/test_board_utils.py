import unittest

from questlog.board_utils import (
    ALL_PLATFORMS,
    column_games,
    favorite_games,
    find_existing_game_id_by_title,
    game_column_id,
    hidden_games_count,
    invariant_violations,
    is_on_board,
    placeholder_cover,
    platform_family,
    unique_platforms,
)
from questlog.constants import PLACEHOLDER_COVERS
from questlog.types import Board, Column, Game, PlaylistItem


def _sample() -> Board:
    games = {
        "g1": Game(id="g1", title="Halo", platform="Xbox One", is_favorite=True),
        "g2": Game(id="g2", title="Bloodborne", platform="PlayStation 4"),
        "g3": Game(id="g3", title="Doom", platform="PC, PlayStation 4"),
        "g4": Game(id="g4", title="Mario", platform="Nintendo Switch"),
    }
    columns = {
        "backlog": Column(id="backlog", item_ids=("g1", "g2")),
        "playing": Column(id="playing", item_ids=("g3", "g4")),
    }
    return Board(games=games, columns=columns, column_order=("backlog", "playing"))


class BoardQueryTests(unittest.TestCase):
    def test_platform_family(self):
        self.assertEqual(platform_family("PlayStation 5"), "PlayStation")
        self.assertEqual(platform_family("Switch"), "Nintendo")
        self.assertEqual(platform_family("Atari 2600"), "Atari 2600")

    def test_unique_platforms(self):
        self.assertEqual(
            unique_platforms(_sample()),
            sorted([ALL_PLATFORMS, "Xbox", "PlayStation", "Nintendo"]),
        )

    def test_hidden_games_count(self):
        board = _sample()
        self.assertEqual(hidden_games_count(board, ALL_PLATFORMS), 0)
        self.assertEqual(hidden_games_count(board, "PlayStation"), 2)

    def test_column_games_filters_by_platform(self):
        games = column_games(_sample(), "playing", "pc")
        self.assertEqual([g.id for g in games], ["g3"])
        self.assertEqual(column_games(_sample(), "missing"), [])

    def test_favorites(self):
        self.assertEqual([g.id for g in favorite_games(_sample())], ["g1"])

    def test_find_existing_by_title_is_trimmed_and_case_insensitive(self):
        self.assertEqual(find_existing_game_id_by_title(_sample(), "  halo "), "g1")
        self.assertIsNone(find_existing_game_id_by_title(_sample(), "Halo 2"))
        self.assertIsNone(find_existing_game_id_by_title(_sample(), "   "))

    def test_game_column_id(self):
        self.assertEqual(game_column_id(_sample(), "g4"), "playing")
        self.assertIsNone(game_column_id(_sample(), "nope"))

    def test_is_on_board(self):
        board = _sample()
        self.assertTrue(is_on_board(board, PlaylistItem(title="x", origin_id="g2")))
        self.assertTrue(
            is_on_board(board, PlaylistItem(title="DOOM", platform="PC, PlayStation 4"))
        )
        self.assertFalse(is_on_board(board, PlaylistItem(title="Doom", platform="PC")))

    def test_placeholder_cover_wraps_index(self):
        self.assertEqual(placeholder_cover(Game(id="g")), PLACEHOLDER_COVERS[0])
        self.assertEqual(
            placeholder_cover(Game(id="g", cover_index=len(PLACEHOLDER_COVERS) + 1)),
            PLACEHOLDER_COVERS[1],
        )

    def test_invariant_violations(self):
        self.assertEqual(invariant_violations(_sample()), [])
        broken = Board(
            games={"g1": Game(id="g1")},
            columns={
                "a": Column(id="a", item_ids=("g1", "ghost")),
                "b": Column(id="b", item_ids=("g1",)),
            },
            column_order=("a", "b", "c"),
        )
        problems = invariant_violations(broken)
        self.assertEqual(len(problems), 3)


if __name__ == "__main__":
    unittest.main()
