import unittest
from unittest import mock

import requests

from questlog.search import GameSearchError, GameSearchResult, SearchClient


def _response(payload=None, status_error=None, json_error=None):
    response = mock.Mock()
    response.raise_for_status.side_effect = status_error
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


class SearchClientTests(unittest.TestCase):
    def setUp(self):
        self.session = mock.Mock(spec=requests.Session)
        self.client = SearchClient("http://proxy/searchGames", timeout=5, session=self.session)

    def test_parses_results(self):
        self.session.get.return_value = _response(
            {
                "results": [
                    {
                        "id": 3498,
                        "name": "Grand Theft Auto V",
                        "platforms": [
                            {"platform": {"name": "PC"}},
                            {"platform": None},
                        ],
                        "genres": [{"name": "Action"}],
                        "released": "2013-09-17",
                        "background_image": "http://img/gta.jpg",
                        "metacritic": 92,
                    }
                ]
            }
        )
        results = self.client.search("gta")
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].platforms, ["PC"])
        self.assertEqual(results[0].genres, ["Action"])
        self.assertEqual(results[0].metacritic, 92)
        self.session.get.assert_called_once_with(
            "http://proxy/searchGames",
            params={"search": "gta", "page_size": 10},
            timeout=5,
        )

    def test_forwards_optional_params(self):
        self.session.get.return_value = _response({"results": []})
        self.client.search(
            " zelda ", ordering="-rating", page_size=20, dates="2017-01-01,2017-12-31",
            platforms="7",
        )
        _, kwargs = self.session.get.call_args
        self.assertEqual(
            kwargs["params"],
            {
                "search": "zelda",
                "page_size": 20,
                "ordering": "-rating",
                "dates": "2017-01-01,2017-12-31",
                "platforms": "7",
            },
        )

    def test_empty_results_are_not_an_error(self):
        self.session.get.return_value = _response({"count": 0})
        self.assertEqual(self.client.search("nothing"), [])

    def test_blank_query_skips_request(self):
        self.assertEqual(self.client.search("   "), [])
        self.session.get.assert_not_called()

    def test_http_error_raises(self):
        self.session.get.return_value = _response(
            status_error=requests.HTTPError("502 Bad Gateway")
        )
        with self.assertLogs("questlog.search", level="ERROR"):
            with self.assertRaises(GameSearchError):
                self.client.search("gta")

    def test_undecodable_body_raises(self):
        self.session.get.return_value = _response(json_error=ValueError("no json"))
        with self.assertLogs("questlog.search", level="ERROR"):
            with self.assertRaises(GameSearchError):
                self.client.search("gta")

    def test_connection_error_raises(self):
        self.session.get.side_effect = requests.ConnectionError("refused")
        with self.assertLogs("questlog.search", level="ERROR"):
            with self.assertRaises(GameSearchError):
                self.client.search("gta")

    def test_result_without_platforms_keeps_none(self):
        self.assertIsNone(GameSearchResult.from_dict({"name": "x"}).platforms)


if __name__ == "__main__":
    unittest.main()
