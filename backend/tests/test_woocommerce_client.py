from unittest.mock import MagicMock

import pytest
import requests

from catalog_mirror.core.errors import RemoteCatalogError
from catalog_mirror.services.woocommerce_client import WooCommerceClient, iter_pages
from catalog_mirror.schemas.sync import CatalogPage


def response(status=200, json_data=None, headers=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.text = text
    if isinstance(json_data, Exception):
        resp.json.side_effect = json_data
    else:
        resp.json.return_value = json_data
    return resp


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    return WooCommerceClient(
        url="https://shop.example.com/",
        consumer_key="ck_test",
        consumer_secret="cs_test",
        timeout=30,
        session=session,
    )


def test_fetch_products_page(client, session):
    session.get.return_value = response(json_data=[{"id": 1}], headers={"X-WP-Total": "113"})

    page = client.fetch_products_page(1, 50)

    assert page == CatalogPage(number=1, records=[{"id": 1}], total_hint=113)
    session.get.assert_called_once_with(
        "https://shop.example.com/wp-json/wc/v3/products",
        params={"per_page": 50, "page": 1},
        timeout=30,
    )
    assert session.auth == ("ck_test", "cs_test")


def test_total_hint_only_on_first_page(client, session):
    session.get.return_value = response(json_data=[{"id": 1}], headers={"X-WP-Total": "113"})
    assert client.fetch_products_page(2, 50).total_hint is None


@pytest.mark.parametrize("headers", [{}, {"X-WP-Total": "lots"}])
def test_bad_total_hint_is_ignored(client, session, headers):
    session.get.return_value = response(json_data=[], headers=headers)
    assert client.fetch_products_page(1, 50).total_hint is None


def test_categories_endpoint(client, session):
    session.get.return_value = response(json_data=[])

    client.fetch_categories_page(3, 100)

    url = session.get.call_args.args[0]
    assert url == "https://shop.example.com/wp-json/wc/v3/products/categories"
    assert session.get.call_args.kwargs["params"] == {"per_page": 100, "page": 3}


def test_http_error_carries_status_and_body(client, session):
    session.get.return_value = response(status=401, text='{"code":"woocommerce_rest_cannot_view"}' + "x" * 5000)

    with pytest.raises(RemoteCatalogError) as exc:
        client.fetch_products_page(1, 50)

    assert exc.value.status_code == 401
    assert "woocommerce_rest_cannot_view" in exc.value.body
    assert len(exc.value.body) <= 1200


def test_timeout_is_wrapped(client, session):
    session.get.side_effect = requests.Timeout("read timed out")

    with pytest.raises(RemoteCatalogError) as exc:
        client.fetch_products_page(1, 50)

    assert exc.value.status_code is None
    assert "timed out" in str(exc.value)


def test_non_list_payload_is_an_error(client, session):
    session.get.return_value = response(json_data={"message": "maintenance"})

    with pytest.raises(RemoteCatalogError):
        client.fetch_products_page(1, 50)


def test_invalid_json_is_an_error(client, session):
    session.get.return_value = response(json_data=ValueError("no json"), text="<html>")

    with pytest.raises(RemoteCatalogError):
        client.fetch_categories_page(1, 100)


def test_iter_product_pages_restarts_each_call(client, session):
    session.get.side_effect = [
        response(json_data=[{"id": 1}, {"id": 2}]),
        response(json_data=[]),
        response(json_data=[{"id": 1}, {"id": 2}]),
        response(json_data=[]),
    ]

    first = [len(p) for p in client.iter_product_pages(per_page=2)]
    second = [p.number for p in client.iter_product_pages(per_page=2)]

    assert first == [2, 0]
    assert second == [1, 2]


def test_iter_pages_is_lazy():
    calls = []

    def fetch(page, per_page):
        calls.append(page)
        return CatalogPage(number=page, records=[{}] if page < 3 else [])

    pages = iter_pages(fetch, 10)
    assert calls == []
    next(pages)
    assert calls == [1]
    assert [p.number for p in pages] == [2, 3]


def test_ping(client, session):
    session.get.return_value = response(json_data={"namespace": "wc/v3"})

    assert client.ping() == {"namespace": "wc/v3"}
    assert session.get.call_args.args[0] == "https://shop.example.com/wp-json/wc/v3/"
