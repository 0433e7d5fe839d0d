from __future__ import annotations

import os
from typing import Any, Dict, Iterable, List, Optional, Set

import httpx

from .config import SHOPIFY_API_VERSION, TAG_LOOKUP_BATCH_SIZE, TAG_LOOKUP_TIMEOUT_SECS


PRODUCT_TAGS_QUERY = """
query ProductsTags($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on Product { id tags }
  }
}
"""


class TagLookupError(RuntimeError):
    pass


def admin_token(shop: str) -> Optional[str]:
    """Offline Admin API token for a shop, if one is configured."""
    # Per-shop token first (SHOPIFY_ADMIN_TOKEN__my_shop_myshopify_com), then the shared one
    key = "SHOPIFY_ADMIN_TOKEN__" + "".join(c if c.isalnum() else "_" for c in (shop or ""))
    return os.getenv(key) or os.getenv("SHOPIFY_ADMIN_TOKEN") or None


def graphql_url(shop: str) -> str:
    return f"https://{shop}/admin/api/{SHOPIFY_API_VERSION}/graphql.json"


def admin_headers(token: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-Shopify-Access-Token": token,
    }


def normalize_product_ids(values: Iterable[Any] | None) -> List[int]:
    """Positive integer IDs, deduplicated and sorted."""
    out: Set[int] = set()
    for v in values or []:
        if isinstance(v, bool):
            continue
        try:
            n = int(str(v).strip())
        except (TypeError, ValueError):
            continue
        if n > 0:
            out.add(n)
    return sorted(out)


def parse_product_ids_csv(csv: str | None) -> List[int]:
    return normalize_product_ids((csv or "").split(","))


def _chunks(ids: List[int], size: int) -> Iterable[List[int]]:
    for i in range(0, len(ids), size):
        yield ids[i:i + size]


def fetch_product_tags(
    shop: str,
    product_ids: Iterable[Any],
    access_token: str,
    batch_size: int = TAG_LOOKUP_BATCH_SIZE,
    timeout: float = TAG_LOOKUP_TIMEOUT_SECS,
) -> Set[str]:
    """Union of tags across the given products, queried in batches of <= 100."""
    ids = normalize_product_ids(product_ids)
    tags: Set[str] = set()
    if not ids:
        return tags
    size = max(1, min(100, int(batch_size)))
    with httpx.Client(timeout=timeout) as client:
        for part in _chunks(ids, size):
            gids = [f"gid://shopify/Product/{i}" for i in part]
            r = client.post(
                graphql_url(shop),
                headers=admin_headers(access_token),
                json={"query": PRODUCT_TAGS_QUERY, "variables": {"ids": gids}},
            )
            if r.status_code >= 400:
                raise TagLookupError(f"Admin GraphQL failed: {r.status_code} {r.text[:200]}")
            data = r.json()
            if isinstance(data, dict) and data.get("errors") and not data.get("data"):
                raise TagLookupError(f"Admin GraphQL errors: {data['errors']}")
            nodes = ((data or {}).get("data") or {}).get("nodes") or []
            for node in nodes:
                for tag in (node or {}).get("tags") or []:
                    if isinstance(tag, str) and tag.strip():
                        tags.add(tag.strip())
    return tags
