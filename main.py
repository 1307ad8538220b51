# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
# Cloud function for QuestLog - the game metadata search proxy.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Standard library imports
import json

# Third-party library imports
import requests
from firebase_functions import https_fn, options

# Local application imports
from questlog.config import get_settings
from questlog.proxy import forward_search
from questlog.schemas import SearchParams

DEFAULT_PAGE_SIZE = 10

_upstream = requests.Session()


def _page_size(value) -> int:
    try:
        return int(value) if value else DEFAULT_PAGE_SIZE
    except ValueError:
        return DEFAULT_PAGE_SIZE


@https_fn.on_request(
    cors=options.CorsOptions(cors_origins="*", cors_methods=["get"]),
    memory=options.MemoryOption.MB_256,
)
def search_games(req: https_fn.Request) -> https_fn.Response:
    """
    Forwards a game search to the metadata API, keeping the API key here.

    Query args: search, ordering, page_size (default 10), dates, platforms.
    """
    params = SearchParams(
        search=req.args.get("search"),
        ordering=req.args.get("ordering"),
        page_size=_page_size(req.args.get("page_size")),
        dates=req.args.get("dates"),
        platforms=req.args.get("platforms"),
    )
    status, payload = forward_search(_upstream, get_settings(), params)
    return https_fn.Response(
        json.dumps(payload), status=status, mimetype="application/json"
    )
