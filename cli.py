"""Contact timeline — command-line entry point.

Usage:
  # First page of everything
  python cli.py timeline --user-id user-123 --contact-id 5b0e...

  # Notes and emails mentioning "renewal", 10 per page, older than a cursor
  python cli.py timeline --user-id user-123 --contact-id 5b0e... \
      --types note,email --search renewal --limit 10 \
      --cursor 2026-03-03T10:00:00Z

  # Walk every page
  python cli.py timeline --user-id user-123 --contact-id 5b0e... --all
"""
import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

EXIT_NOT_FOUND = 3
EXIT_INVALID = 2


async def run_timeline(
    user_id: str,
    contact_id: str,
    types: str = "",
    search: str = "",
    cursor: str = "",
    limit: int = None,
    all_pages: bool = False,
) -> list:
    """Fetch one page (or every page) and return the wire-format payloads."""
    from schemas.timeline import TimelineQuery

    query = TimelineQuery.from_params(types=types, search=search, cursor=cursor, limit=limit)

    # Imported here so --help and input errors need no configured DATABASE_URL
    from db.connection import AsyncSessionLocal, dispose_engine
    from timeline.service import get_contact_timeline, iter_timeline_pages

    try:
        if all_pages:
            return [
                page.to_wire()
                async for page in iter_timeline_pages(AsyncSessionLocal, user_id, contact_id, query)
            ]
        page = await get_contact_timeline(AsyncSessionLocal, user_id, contact_id, query)
        return [page.to_wire()]
    finally:
        await dispose_engine()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Unified contact timeline")
    sub = parser.add_subparsers(dest="command")

    timeline = sub.add_parser("timeline", help="Print a contact's timeline as JSON")
    timeline.add_argument("--user-id", required=True, help="Requesting (owning) user id")
    timeline.add_argument("--contact-id", required=True)
    timeline.add_argument(
        "--types",
        default="",
        help="Comma-separated event types: email, meeting, call, note, "
        "linkedin_message, linkedin_connection, whatsapp, other (default: all)",
    )
    timeline.add_argument("--search", default="", help="Case-insensitive substring filter")
    timeline.add_argument("--cursor", default="", help="Pagination cursor (ISO 8601 timestamp)")
    timeline.add_argument("--limit", type=int, default=None, help="Items per page (default: 20, max: 100)")
    timeline.add_argument(
        "--all",
        dest="all_pages",
        action="store_true",
        default=False,
        help="Follow nextCursor until the last page",
    )

    return parser


def main(argv=None) -> int:
    from timeline.errors import ContactNotFoundError, InvalidTimelineQueryError

    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    if args.command != "timeline":
        parser.print_help()
        return 1

    try:
        pages = asyncio.run(run_timeline(
            user_id=args.user_id,
            contact_id=args.contact_id,
            types=args.types,
            search=args.search,
            cursor=args.cursor,
            limit=args.limit,
            all_pages=args.all_pages,
        ))
    except ContactNotFoundError as e:
        print(f"Not found: {e}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except InvalidTimelineQueryError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        return EXIT_INVALID

    logger.debug("Fetched %d timeline page(s) for contact_id=%s", len(pages), args.contact_id)
    output = pages if args.all_pages else pages[0]
    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
