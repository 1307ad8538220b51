"""Board defaults and fixed limits."""

from questlog.types import Board, Column

MAX_COLUMNS = 5

SAVE_DEBOUNCE_SECONDS = 1.0
SAVED_STATUS_SECONDS = 2.0
INITIAL_LOAD_TIMEOUT_SECONDS = 3.0

DEFAULT_COLUMN_ID = "backlog"
DEFAULT_COLUMN_ICON = "gamepad"

# Symbolic icon names the front end knows how to render.
COLUMN_ICONS = (
    "clock",
    "gamepad",
    "trophy",
    "star",
    "heart",
    "zap",
    "skull",
    "flame",
    "bookmark",
    "sword",
    "target",
    "ghost",
)

# Picked by Game.cover_index when a game has no cover image.
PLACEHOLDER_COVERS = (
    "linear-gradient(to bottom right, #ef4444, #b91c1c)",
    "linear-gradient(to bottom right, #3b82f6, #1d4ed8)",
    "linear-gradient(to bottom right, #10b981, #047857)",
    "linear-gradient(to bottom right, #8b5cf6, #6d28d9)",
    "linear-gradient(to bottom right, #f59e0b, #b45309)",
)

UNKNOWN_PLATFORM = "Unk"
UNKNOWN_GENRE = "Gen"
DEFAULT_DISPLAY_NAME = "Player"
GUEST_DISPLAY_NAME = "Guest"

INITIAL_BOARD = Board(
    games={},
    columns={
        "backlog": Column(id="backlog", title="To Play", icon="clock"),
        "playing": Column(id="playing", title="Currently Playing", icon="gamepad"),
        "completed": Column(id="completed", title="Victory Road", icon="trophy"),
    },
    column_order=("backlog", "playing", "completed"),
)
