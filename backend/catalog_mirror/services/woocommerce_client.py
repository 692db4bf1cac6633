"""
WooCommerce Client
Paginated read access to the WooCommerce REST API (wc/v3).
"""

import logging
from typing import Any, Callable, Iterator, Optional

import requests

from catalog_mirror.core.errors import RemoteCatalogError
from catalog_mirror.schemas.sync import CatalogPage

logger = logging.getLogger(__name__)

API_PREFIX = "/wp-json/wc/v3"
CATEGORIES_ENDPOINT = "products/categories"
PRODUCTS_ENDPOINT = "products"
TOTAL_HEADER = "X-WP-Total"

# Keep error bodies readable in logs
MAX_BODY_CHARS = 1200

PageFetcher = Callable[[int, int], CatalogPage]


def iter_pages(fetch: PageFetcher, per_page: int) -> Iterator[CatalogPage]:
    """
    Yield pages from `fetch(page, per_page)` starting at page 1.

    Stops after the first empty page, which is yielded too so callers can
    count the request. Every call starts over from page 1.
    """
    page = 1
    while True:
        current = fetch(page, per_page)
        yield current
        if not current.records:
            return
        page += 1


class WooCommerceClient:
    """Read-only WooCommerce catalog client. Never retries on its own."""

    def __init__(
        self,
        url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = url.rstrip("/") + API_PREFIX
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (consumer_key, consumer_secret)
        self.session.headers.update({"Accept": "application/json"})

    def _get(self, endpoint: str, params: Optional[dict] = None) -> requests.Response:
        url = f"{self.base_url}/{endpoint}"
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteCatalogError(f"WooCommerce GET {endpoint} failed: {e}") from e

        if resp.status_code >= 400:
            body = (resp.text or "")[:MAX_BODY_CHARS]
            raise RemoteCatalogError(
                f"WooCommerce GET {endpoint}",
                status_code=resp.status_code,
                body=body,
            )
        return resp

    def _fetch_page(self, endpoint: str, page: int, per_page: int) -> CatalogPage:
        resp = self._get(endpoint, {"per_page": per_page, "page": page})
        try:
            records = resp.json()
        except ValueError as e:
            raise RemoteCatalogError(
                f"WooCommerce GET {endpoint} returned invalid JSON",
                status_code=resp.status_code,
                body=(resp.text or "")[:MAX_BODY_CHARS],
            ) from e

        if not isinstance(records, list):
            raise RemoteCatalogError(
                f"WooCommerce GET {endpoint} did not return a list",
                status_code=resp.status_code,
                body=(resp.text or "")[:MAX_BODY_CHARS],
            )

        total_hint = _parse_total(resp.headers.get(TOTAL_HEADER)) if page == 1 else None
        logger.debug("GET %s page=%s -> %s records", endpoint, page, len(records))
        return CatalogPage(number=page, records=records, total_hint=total_hint)

    def fetch_categories_page(self, page: int, per_page: int = 100) -> CatalogPage:
        return self._fetch_page(CATEGORIES_ENDPOINT, page, per_page)

    def fetch_products_page(self, page: int, per_page: int = 50) -> CatalogPage:
        return self._fetch_page(PRODUCTS_ENDPOINT, page, per_page)

    def iter_category_pages(self, per_page: int = 100) -> Iterator[CatalogPage]:
        return iter_pages(self.fetch_categories_page, per_page)

    def iter_product_pages(self, per_page: int = 50) -> Iterator[CatalogPage]:
        return iter_pages(self.fetch_products_page, per_page)

    def ping(self) -> dict[str, Any]:
        """Fetch the API index. Raises RemoteCatalogError when unreachable."""
        resp = self._get("")
        try:
            data = resp.json()
        except ValueError:
            data = {}
        return data if isinstance(data, dict) else {}


def _parse_total(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
