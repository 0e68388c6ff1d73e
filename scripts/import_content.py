"""
Import container structure from CSV to MongoDB.

The CSV has one row per item:
    container_number,item_number,ruku,page[,container_name]

This script:
1. Upserts one document per item into the items collection
2. Derives ruku and page start markers per container
3. Upserts one document per container with its item count and markers

Usage:
    python -m scripts.import_content data/structure.csv [--dry-run]
"""

from __future__ import annotations

import argparse
from pathlib import Path

import pandas as pd
from pymongo import ASCENDING, UpdateOne

from murajaah.content_repo import CONTAINERS_COLLECTION, ITEMS_COLLECTION, get_database
from murajaah.logging_setup import configure_logging

REQUIRED_COLUMNS = {"container_number", "item_number", "ruku", "page"}


def span_starts(items: pd.DataFrame, column: str) -> list[int]:
    """First item number of every run of equal values in `column`."""
    ordered = items.sort_values("item_number")
    changed = ordered[column] != ordered[column].shift()
    return [int(n) for n in ordered.loc[changed, "item_number"]]


def build_container_docs(df: pd.DataFrame) -> list[dict]:
    docs = []
    for number, items in df.groupby("container_number"):
        name = ""
        if "container_name" in items.columns and not pd.isna(items["container_name"].iloc[0]):
            name = str(items["container_name"].iloc[0])
        docs.append({
            "number": int(number),
            "name": name,
            "item_count": int(items["item_number"].max()),
            "rukus": span_starts(items, "ruku"),
            "pages": span_starts(items, "page"),
        })
    return docs


def import_content(csv_path: Path, dry_run: bool = False) -> None:
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    df = pd.read_csv(csv_path)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"CSV is missing columns: {', '.join(sorted(missing))}")
    print(f"Loaded {len(df)} items from {csv_path}")

    containers = build_container_docs(df)
    print(f"Containers found: {len(containers)}")

    if dry_run:
        for doc in containers:
            print(
                f"  {doc['number']:>3} {doc['name']:<20} {doc['item_count']:>4} items, "
                f"{len(doc['rukus'])} rukus, {len(doc['pages'])} pages"
            )
        print("\nDry run, nothing written.")
        return

    db = get_database()
    items_collection = db[ITEMS_COLLECTION]
    containers_collection = db[CONTAINERS_COLLECTION]
    items_collection.create_index([("container_number", ASCENDING), ("item_number", ASCENDING)], unique=True)
    containers_collection.create_index([("number", ASCENDING)], unique=True)

    item_ops = [
        UpdateOne(
            {"container_number": int(row.container_number), "item_number": int(row.item_number)},
            {"$set": {"ruku": int(row.ruku), "page": int(row.page)}},
            upsert=True,
        )
        for row in df.itertuples(index=False)
    ]
    result = items_collection.bulk_write(item_ops, ordered=False)
    print(f"✓ Items: {result.upserted_count} inserted, {result.modified_count} updated")

    container_ops = [
        UpdateOne({"number": doc["number"]}, {"$set": doc}, upsert=True)
        for doc in containers
    ]
    result = containers_collection.bulk_write(container_ops, ordered=False)
    print(f"✓ Containers: {result.upserted_count} inserted, {result.modified_count} updated")


def main():
    parser = argparse.ArgumentParser(description="Import container structure into MongoDB")
    parser.add_argument("csv_path", type=Path, help="CSV with one row per item")
    parser.add_argument("--dry-run", action="store_true", help="Print what would be imported")
    args = parser.parse_args()

    configure_logging()
    import_content(args.csv_path, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
