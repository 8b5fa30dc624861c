#!/usr/bin/env python3
"""
Database Collection Setup Script

Ensures all required collections and indexes exist, reports document counts
and gives every user without one a default Aily instance.

Usage:
    python ensure_collections.py
    python ensure_collections.py --dry-run
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.table import Table

from aily.crud.aily import AilyCRUD
from aily.db.database import COLLECTIONS, DatabaseManager

logging.basicConfig(level=logging.INFO)

console = Console()


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Set up Aily database collections")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report users missing an Aily instance without creating any"
    )
    return parser.parse_args()


def backfill_aily_instances(db, dry_run: bool = False) -> int:
    """Create the default Aily instance for users that have none."""
    aily_crud = AilyCRUD(db)
    missing = aily_crud.list_users_without_instance()

    if not missing:
        console.print("✅ Every user already has an Aily instance", style="green")
        return 0

    console.print(f"🔍 {len(missing)} user(s) without an Aily instance", style="yellow")
    created = 0
    for user in missing:
        if dry_run:
            console.print(f"   ⏭️  {user.get('email', user['_key'])} (dry run)")
            continue
        aily = aily_crud.create_for_user(user['_key'])
        console.print(f"   ✨ {user.get('email', user['_key'])} → Aily {aily.key}")
        created += 1

    return created


def main():
    """Ensure all database collections exist."""
    args = parse_arguments()

    console.print("🔧 Aily Database Setup", style="bold blue")
    console.print("=" * 40, style="blue")

    try:
        # Connecting creates the database, collections and indexes
        db = DatabaseManager().get_database()

        table = Table(title="Collections")
        table.add_column("Collection")
        table.add_column("Status")
        table.add_column("Documents", justify="right")

        for name in COLLECTIONS:
            if db.has_collection(name):
                table.add_row(name, "✅ exists", str(db.collection(name).count()))
            else:
                table.add_row(name, "❌ missing", "-")

        console.print(table)

        created = backfill_aily_instances(db, dry_run=args.dry_run)
        if created:
            console.print(f"✅ Created {created} Aily instance(s)", style="bold green")

        console.print("=" * 40, style="blue")
        console.print("✅ Database setup complete!", style="bold green")

    except Exception as e:
        console.print(f"❌ Error setting up database: {e}", style="bold red")
        console.print("\nTroubleshooting:")
        console.print("1. Make sure ArangoDB is running")
        console.print("2. Check ARANGO_URL / ARANGO_USERNAME / ARANGO_PASSWORD in .env")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
