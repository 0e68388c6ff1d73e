"""
MongoDB repository for container content metadata.

Provides container sizes and structural boundary markers (ruku and page
starts) to the grouping engine. Text, audio and translations are not read
here.

Documents:
    containers: {"number": 2, "name": "...", "item_count": 286,
                 "rukus": [1, 8, 21, ...], "pages": [1, 6, 17, ...]}
    items:      {"container_number": 2, "item_number": 8, "ruku": 2, "page": 3}

`rukus`/`pages` hold the first item number of each span. When a container
document has no markers they are derived from its item documents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database as MongoDatabase

from murajaah.config import get_mongo_db_name, get_mongo_uri
from murajaah.records import GroupingStrategy

logger = logging.getLogger(__name__)

# Configuration
CONTAINERS_COLLECTION = "containers"
ITEMS_COLLECTION = "items"

# Document field holding the markers of each structural strategy
MARKER_FIELDS = {
    GroupingStrategy.RUKU: "rukus",
    GroupingStrategy.PAGE: "pages",
}
ITEM_FIELDS = {
    GroupingStrategy.RUKU: "ruku",
    GroupingStrategy.PAGE: "page",
}

# Global connection pool (reused across requests)
_client: Optional[MongoClient] = None


@dataclass
class Container:
    """A memorizable unit of content, e.g. a surah."""
    number: int
    item_count: int
    name: str = ""
    rukus: list[int] = field(default_factory=list)
    pages: list[int] = field(default_factory=list)

    def markers_for(self, strategy: GroupingStrategy) -> list[int]:
        if strategy == GroupingStrategy.RUKU:
            return list(self.rukus)
        if strategy == GroupingStrategy.PAGE:
            return list(self.pages)
        return []


class ContentProvider(Protocol):
    """Source of structural boundary markers for the grouping engine."""

    def get_structural_boundaries(
        self,
        container_number: int,
        strategy: GroupingStrategy,
    ) -> list[int]:
        ...


# ---- Connection Management ----

def get_database() -> MongoDatabase:
    """
    Get the content database on a persistent connection pool.

    Raises:
        ValueError: If MONGO_URI is not set
    """
    global _client

    if _client is None:
        _client = MongoClient(
            get_mongo_uri(),
            maxPoolSize=10,  # Connection pool size
            minPoolSize=1,   # Keep at least 1 connection alive
            maxIdleTimeMS=60000  # Keep connections alive for 60 seconds
        )
    return _client[get_mongo_db_name()]


class MongoContentRepository:
    """ContentProvider backed by MongoDB."""

    def __init__(self, database: Optional[MongoDatabase] = None):
        self._database = database

    @property
    def database(self) -> MongoDatabase:
        if self._database is None:
            self._database = get_database()
        return self._database

    def get_container(self, container_number: int) -> Optional[Container]:
        doc = self.database[CONTAINERS_COLLECTION].find_one({"number": container_number})
        if doc is None:
            return None
        return Container(
            number=doc["number"],
            item_count=doc["item_count"],
            name=doc.get("name", ""),
            rukus=list(doc.get("rukus") or []),
            pages=list(doc.get("pages") or []),
        )

    def get_structural_boundaries(
        self,
        container_number: int,
        strategy: GroupingStrategy,
    ) -> list[int]:
        """
        First item number of every ruku or page span in a container.

        Returns an empty list when the container has no data for the strategy.
        """
        strategy = GroupingStrategy(strategy)
        if strategy not in MARKER_FIELDS:
            return []

        container = self.get_container(container_number)
        if container is not None:
            markers = container.markers_for(strategy)
            if markers:
                return markers

        return self._markers_from_items(container_number, strategy)

    def _markers_from_items(self, container_number: int, strategy: GroupingStrategy) -> list[int]:
        item_field = ITEM_FIELDS[strategy]
        cursor = self.database[ITEMS_COLLECTION].find(
            {"container_number": container_number, item_field: {"$ne": None}},
            {"item_number": 1, item_field: 1},
        ).sort("item_number", ASCENDING)

        markers = []
        previous = None
        for doc in cursor:
            span = doc.get(item_field)
            if span != previous:
                markers.append(doc["item_number"])
                previous = span

        logger.debug(
            "Derived %d %s marker(s) for container %d from items",
            len(markers), strategy.value, container_number,
        )
        return markers
