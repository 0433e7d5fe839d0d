import os
import unittest
from unittest.mock import patch

from delivery_date import shopify_client as SC


class FakeResp:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


def make_client(responder, calls):
    class FakeClient:
        def __init__(self, *args, **kwargs):
            calls.append(("init", kwargs))

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def post(self, url, headers=None, json=None):
            calls.append(("post", url, headers, json))
            return responder(json)

    return FakeClient


def _tags_for(body):
    nodes = []
    for gid in body["variables"]["ids"]:
        pid = int(gid.rsplit("/", 1)[1])
        nodes.append({"id": gid, "tags": [f"t{pid % 3}", " "]})
    return FakeResp(payload={"data": {"nodes": nodes}})


class TestFetchProductTags(unittest.TestCase):
    def test_batches_of_one_hundred(self):
        calls = []
        with patch("delivery_date.shopify_client.httpx.Client", make_client(_tags_for, calls)):
            tags = SC.fetch_product_tags("demo.myshopify.com", list(range(1, 251)), "tok")
        posts = [c for c in calls if c[0] == "post"]
        self.assertEqual(len(posts), 3)
        self.assertEqual([len(p[3]["variables"]["ids"]) for p in posts], [100, 100, 50])
        self.assertEqual(tags, {"t0", "t1", "t2"})
        _, url, headers, body = posts[0]
        self.assertEqual(url, f"https://demo.myshopify.com/admin/api/{SC.SHOPIFY_API_VERSION}/graphql.json")
        self.assertEqual(headers["X-Shopify-Access-Token"], "tok")
        self.assertEqual(body["variables"]["ids"][0], "gid://shopify/Product/1")

    def test_empty_ids_make_no_request(self):
        calls = []
        with patch("delivery_date.shopify_client.httpx.Client", make_client(_tags_for, calls)):
            self.assertEqual(SC.fetch_product_tags("demo.myshopify.com", ["x", -1, 0], "tok"), set())
        self.assertEqual(calls, [])

    def test_http_error_raises(self):
        calls = []
        with patch("delivery_date.shopify_client.httpx.Client",
                   make_client(lambda body: FakeResp(status_code=401, text="unauthorized"), calls)):
            with self.assertRaises(SC.TagLookupError):
                SC.fetch_product_tags("demo.myshopify.com", [1], "bad")

    def test_graphql_errors_without_data_raise(self):
        calls = []
        with patch("delivery_date.shopify_client.httpx.Client",
                   make_client(lambda body: FakeResp(payload={"errors": [{"message": "Throttled"}]}), calls)):
            with self.assertRaises(SC.TagLookupError):
                SC.fetch_product_tags("demo.myshopify.com", [1], "tok")


def test_normalize_product_ids():
    assert SC.normalize_product_ids(["3", 1, "1", " 2 ", "x", -5, True, None]) == [1, 2, 3]
    assert SC.parse_product_ids_csv("10, 2,,abc,2") == [2, 10]
    assert SC.parse_product_ids_csv(None) == []


def test_admin_token_prefers_per_shop():
    env = {"SHOPIFY_ADMIN_TOKEN": "shared", "SHOPIFY_ADMIN_TOKEN__demo_myshopify_com": "own"}
    with patch.dict(os.environ, env, clear=False):
        assert SC.admin_token("demo.myshopify.com") == "own"
        assert SC.admin_token("other.myshopify.com") == "shared"


if __name__ == "__main__":
    unittest.main()
