"""
Print what is due for review.

Usage:
    python -m scripts.maintenance.due_summary
    python -m scripts.maintenance.due_summary --units --limit 20
"""

import argparse

from murajaah.logging_setup import configure_logging
from murajaah.records import utc_now
from murajaah.scheduler import DueSetSelector
from murajaah.store import Database, ProgressRepository, SettingsRepository


def main():
    parser = argparse.ArgumentParser(description="Show due review counts")
    parser.add_argument("--units", action="store_true", help="List the due review units")
    parser.add_argument("--limit", type=int, default=None,
                        help="Record limit for the unit list (default: profile review limit)")
    parser.add_argument("--profile", default=None, help="Profile id (default: DEFAULT_PROFILE_ID)")
    args = parser.parse_args()

    configure_logging()
    db = Database.from_env()
    db.init_db()

    selector = DueSetSelector(ProgressRepository(db))
    now = utc_now()
    summary = selector.get_due_summary(now)

    print("=" * 60)
    print(f"DUE NOW: {summary.due}")
    print("=" * 60)
    print(f"  New:      {summary.new}")
    print(f"  Learning: {summary.learning}")
    print(f"  Review:   {summary.review}")

    if args.units:
        limit = args.limit or SettingsRepository(db).get(args.profile).review_limit
        units = selector.build_review_units(selector.get_session_items(now, limit))
        print()
        print(f"Next session ({len(units)} units, limit {limit}):")
        for i, unit in enumerate(units, 1):
            first, last = unit.items[0], unit.items[-1]
            span = f"{first.item_number}-{last.item_number}" if unit.is_group else f"{first.item_number}"
            print(f"  {i:3}. container {first.container_number} items {span} [{unit.state.value}]")


if __name__ == "__main__":
    main()
