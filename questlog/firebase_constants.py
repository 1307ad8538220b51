"""
Document paths in the hosted store.

Every identity's data is namespaced under `artifacts/{app_id}` so several
deployments can share one project.
"""

ARTIFACTS_COLLECTION = "artifacts"
USERS_COLLECTION = "users"
USER_DATA_COLLECTION = "data"
BOARD_DOCUMENT = "board"
SETTINGS_DOCUMENT = "settings"
PUBLIC_PROFILES_COLLECTION = "public_profiles"
RELATIONSHIPS_COLLECTION = "relationships"
PLAYLISTS_COLLECTION = "playlists"

FOLLOWING = "following"
FOLLOWERS = "followers"
BLOCKED = "blocked"
REQUESTS = "requests"
RELATION_KINDS = (FOLLOWING, FOLLOWERS, BLOCKED, REQUESTS)

# Top-level fields of the board document; board writes merge exactly these.
BOARD_FIELDS = ["games", "columns", "columnOrder"]


def _app_root(app_id: str) -> str:
    return f"{ARTIFACTS_COLLECTION}/{app_id}"


def board_path(app_id: str, uid: str) -> str:
    return (
        f"{_app_root(app_id)}/{USERS_COLLECTION}/{uid}/"
        f"{USER_DATA_COLLECTION}/{BOARD_DOCUMENT}"
    )


def settings_path(app_id: str, uid: str) -> str:
    return (
        f"{_app_root(app_id)}/{USERS_COLLECTION}/{uid}/"
        f"{USER_DATA_COLLECTION}/{SETTINGS_DOCUMENT}"
    )


def public_profiles_path(app_id: str) -> str:
    return f"{_app_root(app_id)}/{PUBLIC_PROFILES_COLLECTION}"


def public_profile_path(app_id: str, uid: str) -> str:
    return f"{public_profiles_path(app_id)}/{uid}"


def relation_collection_path(app_id: str, uid: str, kind: str) -> str:
    if kind not in RELATION_KINDS:
        raise ValueError(f"Unknown relationship kind: {kind}")
    return f"{_app_root(app_id)}/{RELATIONSHIPS_COLLECTION}/{uid}/{kind}"


def relation_path(app_id: str, uid: str, kind: str, other_uid: str) -> str:
    return f"{relation_collection_path(app_id, uid, kind)}/{other_uid}"


def playlists_path(app_id: str) -> str:
    return f"{_app_root(app_id)}/{PLAYLISTS_COLLECTION}"


def playlist_path(app_id: str, playlist_id: str) -> str:
    return f"{playlists_path(app_id)}/{playlist_id}"
