"""
Tests for the reference book HTTP router.
"""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from refbook.api import create_refbook_router
from refbook.flexbook import FlexBook
from refbook.models import Item, MultiLangItem


@pytest.fixture
def books():
    statuses = FlexBook(default_lang="en")
    statuses.add_items([Item(1, "Open"), Item(2, "Closed")])
    statuses.optimize()

    countries = FlexBook(default_lang="en")
    countries.add_multi_lang_item(MultiLangItem(1, {"en": "Germany", "de": "Deutschland"}))
    countries.add_multi_lang_item(MultiLangItem(2, {"en": "France"}))
    countries.optimize()

    return {"statuses": statuses, "countries": countries}


@pytest.fixture
def client(books):
    app = FastAPI()
    app.include_router(create_refbook_router(books))
    return TestClient(app)


class TestListBooks:
    def test_list(self, client):
        response = client.get("/refbooks")
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert [b["name"] for b in data["books"]] == ["countries", "statuses"]
        assert data["books"][0]["languages"] == ["en", "de"]
        assert data["books"][1]["length"] == 2


class TestBookSnapshot:
    def test_snapshot(self, client, books):
        response = client.get("/refbooks/statuses")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.headers["etag"] == f'"{books["statuses"].hash()}"'
        assert response.json()["items"] == [{"id": 1, "name": "Open"}, {"id": 2, "name": "Closed"}]

    def test_language(self, client):
        response = client.get("/refbooks/countries", params={"lang": "de"})
        assert response.json()["items"][0]["name"] == "Deutschland"

    def test_not_modified(self, client):
        etag = client.get("/refbooks/statuses").headers["etag"]
        response = client.get("/refbooks/statuses", headers={"If-None-Match": etag})
        assert response.status_code == 304

    def test_stale_etag(self, client, books):
        etag = client.get("/refbooks/statuses").headers["etag"]
        books["statuses"].add_item(Item(3, "Archived"))
        books["statuses"].optimize()

        response = client.get("/refbooks/statuses", headers={"If-None-Match": etag})
        assert response.status_code == 200
        assert len(json.loads(response.content)["items"]) == 3

    def test_unknown_book(self, client):
        response = client.get("/refbooks/missing")
        assert response.status_code == 404
        assert "missing" in response.json()["detail"]


class TestItems:
    def test_item(self, client):
        response = client.get("/refbooks/statuses/items/2")
        assert response.status_code == 200
        assert response.json() == {"id": 2, "name": "Closed"}

    def test_item_language_fallback(self, client):
        response = client.get("/refbooks/countries/items/2", params={"lang": "de"})
        assert response.json()["name"] == "France"

    def test_item_not_found(self, client):
        assert client.get("/refbooks/statuses/items/99").status_code == 404


class TestSearch:
    def test_search(self, client):
        response = client.get("/refbooks/statuses/search", params={"q": "OPE"})
        assert response.status_code == 200
        assert response.json() == {"query": "OPE", "ids": [1]}

    def test_search_language(self, client):
        response = client.get("/refbooks/countries/search", params={"q": "deutsch", "lang": "de"})
        assert response.json()["ids"] == [1]

    def test_query_required(self, client):
        assert client.get("/refbooks/statuses/search").status_code == 422
