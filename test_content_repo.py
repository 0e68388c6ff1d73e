"""
Tests for the MongoDB content repository, using a mocked database.
"""

from unittest import mock

import pytest

from murajaah import config
from murajaah.content_repo import CONTAINERS_COLLECTION, ITEMS_COLLECTION, MongoContentRepository
from murajaah.records import GroupingStrategy


@pytest.fixture
def collections():
    return {
        CONTAINERS_COLLECTION: mock.MagicMock(),
        ITEMS_COLLECTION: mock.MagicMock(),
    }


@pytest.fixture
def repo(collections):
    return MongoContentRepository(database=collections)


def test_get_container(repo, collections):
    collections[CONTAINERS_COLLECTION].find_one.return_value = {
        "number": 18, "name": "Al-Kahf", "item_count": 110, "rukus": [1, 13, 23], "pages": [1, 4],
    }

    container = repo.get_container(18)

    collections[CONTAINERS_COLLECTION].find_one.assert_called_once_with({"number": 18})
    assert container.item_count == 110
    assert container.markers_for(GroupingStrategy.RUKU) == [1, 13, 23]
    assert container.markers_for(GroupingStrategy.PAGE) == [1, 4]
    assert container.markers_for(GroupingStrategy.FIXED) == []


def test_get_missing_container(repo, collections):
    collections[CONTAINERS_COLLECTION].find_one.return_value = None
    assert repo.get_container(200) is None


def test_boundaries_from_container_document(repo, collections):
    collections[CONTAINERS_COLLECTION].find_one.return_value = {
        "number": 18, "item_count": 110, "rukus": [1, 13, 23], "pages": [],
    }

    assert repo.get_structural_boundaries(18, GroupingStrategy.RUKU) == [1, 13, 23]
    collections[ITEMS_COLLECTION].find.assert_not_called()


def test_boundaries_derived_from_items(repo, collections):
    collections[CONTAINERS_COLLECTION].find_one.return_value = {
        "number": 18, "item_count": 6, "rukus": [], "pages": None,
    }
    cursor = collections[ITEMS_COLLECTION].find.return_value
    cursor.sort.return_value = [
        {"item_number": 1, "page": 293},
        {"item_number": 2, "page": 293},
        {"item_number": 3, "page": 294},
        {"item_number": 4, "page": 294},
        {"item_number": 5, "page": 294},
        {"item_number": 6, "page": 295},
    ]

    assert repo.get_structural_boundaries(18, GroupingStrategy.PAGE) == [1, 3, 6]
    query = collections[ITEMS_COLLECTION].find.call_args[0][0]
    assert query["container_number"] == 18
    assert "page" in query


def test_non_structural_strategy_has_no_boundaries(repo, collections):
    assert repo.get_structural_boundaries(18, GroupingStrategy.FIXED) == []
    collections[CONTAINERS_COLLECTION].find_one.assert_not_called()


def test_mongo_uri_is_required(monkeypatch):
    monkeypatch.delenv("MONGO_URI", raising=False)
    with pytest.raises(ValueError):
        config.get_mongo_uri()


def test_default_connection_uses_environment(monkeypatch):
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017")
    monkeypatch.setenv("MONGO_DB_NAME", "content_test")
    with mock.patch("murajaah.content_repo.MongoClient") as client_cls, \
            mock.patch("murajaah.content_repo._client", None):
        database = MongoContentRepository().database

    client_cls.assert_called_once()
    assert client_cls.call_args[0][0] == "mongodb://localhost:27017"
    client_cls.return_value.__getitem__.assert_called_once_with("content_test")
    assert database is client_cls.return_value.__getitem__.return_value
