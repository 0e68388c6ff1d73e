"""
Reset all learning progress.

DANGEROUS: This deletes all item records, review history, groups and
session statistics!
Only use when you want to start fresh for testing.

Usage:
    python -m scripts.maintenance.reset_progress
    python -m scripts.maintenance.reset_progress --yes
"""

import argparse

from murajaah.logging_setup import configure_logging
from murajaah.store import Database
from murajaah.store.maintenance import reset_all_progress


def main():
    parser = argparse.ArgumentParser(description="Reset all learning progress")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    args = parser.parse_args()

    configure_logging()

    print("=" * 60)
    print("WARNING: Reset Learning Progress")
    print("=" * 60)
    print()
    print("This will DELETE all learning data:")
    print("  - All item records (stability, difficulty, due dates)")
    print("  - All review history")
    print("  - All groups and session statistics")
    print()

    if not args.yes:
        response = input("Are you sure you want to reset? (type 'yes' to confirm): ")
        if response.lower() != "yes":
            print("\nCancelled. No changes made.")
            return

    db = Database.from_env()
    db.init_db()
    print("\nResetting progress...")
    counts = reset_all_progress(db)
    print(
        f"✓ Deleted {counts['items']} items, {counts['groups']} groups, "
        f"{counts['sessions']} sessions"
    )


if __name__ == "__main__":
    main()
