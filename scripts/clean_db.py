import argparse
import asyncio

from core.db import Database, database_url


async def _clean(dsn: str) -> None:
    db = Database(dsn, min_size=1, max_size=1)
    await db.connect()
    try:
        await db.truncate_all()
    finally:
        await db.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Remove all organizations, projects, tokens and test runs, keeping the schema."
    )
    parser.add_argument("--database-url", default=None, help="Defaults to $DATABASE_URL.")
    parser.add_argument("--yes", action="store_true", help="Required; confirms the delete.")
    args = parser.parse_args()
    if not args.yes:
        raise SystemExit("Refusing to delete data without --yes")

    try:
        dsn = args.database_url or database_url()
    except RuntimeError as exc:
        raise SystemExit(str(exc)) from exc

    asyncio.run(_clean(dsn))
    print("All data removed; schema preserved.")


if __name__ == "__main__":
    main()
