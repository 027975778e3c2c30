"""Initialize the storage schema for the tour back office.

Creates the tables of whichever backend the settings select and, with
`--seed`, loads the demo catalog and tours into an empty store.
Run this before starting the API server.
"""

import argparse
import asyncio
import sys

from tourdesk.logging_config import setup_logging
from tourdesk.seed import seed_database
from tourdesk.stores import create_store


async def init_database(seed: bool = False) -> None:
    """Create all tables of the selected backend."""
    store = create_store()
    print(f"Initializing {store.backend} store")
    try:
        await store.create_schema()
        print("✓ Created all tables")

        if seed:
            if await seed_database(store):
                print("✓ Seeded demo data")
            else:
                print("✓ Store already holds data, seeding skipped")
    finally:
        await store.dispose()

    print("\n✅ Database initialization complete!")


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", action="store_true", help="load demo data into an empty store")
    args = parser.parse_args()

    setup_logging()
    try:
        await init_database(seed=args.seed)
    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
